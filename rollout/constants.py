from enum import Enum
from pathlib import Path

import rollout

#
# Filesystem
#

ROLLOUT_DIR = Path(rollout.__file__).parent
MANIFESTS_DIR = ROLLOUT_DIR / "manifests"

UNITS_MANIFEST_STEM = "data"
CALLS_MANIFEST_STEM = "setup"
CONFIG_FILENAME = "rollout.yml"

MANIFEST_JSON_FORMAT = {"indent": 2}

#
# Placeholders
#

PLACEHOLDER_TEMPLATE = "${{{name}.address}}"
PLACEHOLDER_PATTERN = r"\$\{([^${}]+)\.address\}"

#
# Failure handling
#


class FailurePolicy(Enum):
    TOLERANT = "tolerant"
    STRICT = "strict"


DEFAULT_FAILURE_POLICIES = {
    "deploy": FailurePolicy.STRICT,
    "proxy": FailurePolicy.TOLERANT,
}

#
# Confirmations (seconds)
#

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_SETTLE_DELAY = 1.0
DEFAULT_CONFIRMATION_TIMEOUT = 600.0
DEFAULT_BACKOFF = 1.5
DEFAULT_MAX_POLL_INTERVAL = 15.0

#
# Contracts
#

OZ_DEPENDENCY_NAME = "openzeppelin"
OZ_DEPENDENCY_VERSION = "5.0.0"

# EIP1967 Admin slot - https://eips.ethereum.org/EIPS/eip-1967#admin-address
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

INITIALIZER_METHOD = "initialize"

LOCAL_NETWORKS = ["local"]
