"""
constants.py
Identifiers shared by the Stardew Valley handler, installers and SMAPI code.
"""

GAME_ID = "stardewvalley"
GAME_NAME = "Stardew Valley"
SMAPI_EXE = "StardewModdingAPI.exe"

# Game store IDs
STEAMAPP_ID = "413150"
GOGAPP_ID = "1453375253"
XBOXAPP_ID = "ConcernedApe.StardewValleyPC"

NEXUS_DOMAIN = "stardewvalley"
NEXUS_MODS_URL = f"https://www.nexusmods.com/{NEXUS_DOMAIN}/mods/"
SMAPI_PAGE_URL = f"https://www.nexusmods.com/{NEXUS_DOMAIN}/mods/2400"

# Mod types registered by the handler
MOD_TYPE_SMAPI = "SMAPI"
MOD_TYPE_ROOT_FOLDER = "sdvrootfolder"

MANIFEST_FILE = "manifest.json"
