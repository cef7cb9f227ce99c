"""
Archive installers for Stardew Valley mods.

- smapi        - SMAPI itself (the platform installer payload)
- smapi_mods   - regular SMAPI mods, one per manifest.json
- root_folder  - Content/ replacement mods deployed to the game root
- added_files  - re-imports files created in the game folder after deploy
"""

from .instructions import InstallInstruction, InstallResult, ModInstallError, SupportedResult

__all__ = ["InstallInstruction", "InstallResult", "ModInstallError", "SupportedResult"]
