"""Build information stamped into release builds.

The release workflow rewrites both values before freezing the executable.
Source checkouts keep the ``dev`` tag, which disables self-updating.
"""

DEV_TAG = "dev"

INSTALLER_TAG = DEV_TAG
INSTALLER_GIT_HASH = "Unknown"
