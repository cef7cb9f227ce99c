"""Game handlers. Each game lives in Games/<Game Name>/<Game Name>.py."""
