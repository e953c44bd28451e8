# Installs Logger.trace for every helper module.
from plugin_tools.helpers import log_utils  # noqa: F401
