"""Names, endpoints and packaging conventions shared by the installer."""

from .buildinfo import INSTALLER_GIT_HASH

NAME = "Mushcord Installer"
DATA_DIR_NAME = "mushcord"
ASAR_NAME = "mushcord.asar"
INSTALLED_MARKER_NAME = "installed.json"

# Environment overrides
USER_DATA_DIR_ENV = "EQUICORD_USER_DATA_DIR"
DEV_INSTALL_ENV = "EQUICORD_DEV_INSTALL"

ADDON_REPO = "MushZI/MushZicord"
INSTALLER_REPO = "MushZI/Mushcord-Installer"

GITHUB_API_LATEST = "https://api.github.com/repos/{repo}/releases/latest"
GITHUB_LATEST_PAGE = "https://github.com/{repo}/releases/latest"
GITHUB_ASSET_DOWNLOAD = "https://github.com/{repo}/releases/download/{tag}/{asset}"

ADDON_ASSET_NAME = ASAR_NAME

# Installer artifacts, keyed by platform.system() and machine
INSTALLER_ASSETS = {
    ("Windows", "x86_64"): "MushcordInstaller.exe",
    ("Linux", "x86_64"): "MushcordInstaller-linux",
    ("Linux", "arm64"): "MushcordInstaller-linux-arm64",
    ("Darwin", "x86_64"): "MushcordInstaller.MacOS.zip",
    ("Darwin", "arm64"): "MushcordInstaller.MacOS.zip",
}

OPENASAR_DOWNLOAD_URL = "https://github.com/GooseMod/OpenAsar/releases/download/nightly/app.asar"

USER_AGENT = f"Mushcord-Installer/{INSTALLER_GIT_HASH} (https://github.com/{INSTALLER_REPO})"

REQUEST_TIMEOUT = 10
DOWNLOAD_TIMEOUT = 60

# Release channels
STABLE = "stable"
PTB = "ptb"
CANARY = "canary"
DEVELOPMENT = "development"
UNKNOWN = "unknown"

CHANNELS = (STABLE, PTB, CANARY, DEVELOPMENT)

# Per-user Squirrel folders on Windows, bundle names on macOS
WINDOWS_DISCORD_NAMES = {
    STABLE: "Discord",
    PTB: "DiscordPTB",
    CANARY: "DiscordCanary",
    DEVELOPMENT: "DiscordDevelopment",
}

MACOS_DISCORD_NAMES = {
    STABLE: "Discord.app",
    PTB: "Discord PTB.app",
    CANARY: "Discord Canary.app",
    DEVELOPMENT: "Discord Development.app",
}

LINUX_DISCORD_NAMES = [
    "Discord", "DiscordPTB", "DiscordCanary", "DiscordDevelopment",
    "discord", "discordptb", "discordcanary", "discorddevelopment",
    "discord-ptb", "discord-canary", "discord-development",
    "com.discordapp.Discord", "com.discordapp.DiscordPTB",
    "com.discordapp.DiscordCanary", "com.discordapp.DiscordDevelopment",
]

FLATPAK_PREFIX = "com.discordapp."

# Files inside a client's resource folder
APP_ASAR = "app.asar"
ORIGINAL_ASAR = "_app.asar"
OPENASAR_BACKUP = "app.asar.original"
