# Project layout
OPENSPEC_DIRNAME = "openspec"
CHANGES_DIRNAME = "changes"

# Record store key prefixes (relative to <project>/openspec)
APPROVALS_PREFIX = "approvals"
REVIEWS_PREFIX = "reviews"
CHECK_HISTORY_PREFIX = "qa"

# Record files
RECORD_SUFFIX = ".json"
RECORD_TEMP_SUFFIX = ".json.tmp"

# Configuration
CONFIG_DIRNAME = ".changegate"
CONFIG_FILENAME = "config.yml"
