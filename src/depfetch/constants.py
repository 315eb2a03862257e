"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    SPEC_ERROR = 4
    CONFIG_ERROR = 5


class ConfigKeys(Enum):
    """Recognized keys of the flat resolver property map."""

    PACKAGES_TO_COPY = "PACKAGES_TO_COPY"
    TARGET_DIR = "TARGET_DIR"
    MAVEN_REPOS = "MAVEN_REPOS"
    USE_MAVEN_LOCAL_REPO = "USE_MAVEN_LOCAL_REPO"
    USE_REMOTE_MAVEN_REPOS = "USE_REMOTE_MAVEN_REPOS"
    USE_JETIFIER = "USE_JETIFIER"
    DATA_BINDING_VERSION = "DATA_BINDING_VERSION"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "DEPFETCH_LOG_LEVEL"
    ENV_PREFIX = "DEPFETCH_"
    CONFIG_SECTION = "depfetch"

    # Report contract parsed by collaborators
    COPIED_HEADER = "Copied artifacts:"
    MISSING_HEADER = "Missing artifacts:"
    MODIFIED_HEADER = "Modified artifacts:"
    MODIFIED_SEPARATOR = " --> "

    # Repositories
    REMOTE_MAVEN_REPOS = [
        "https://maven.google.com",
        "https://repo1.maven.org/maven2",
    ]
    MAVEN_METADATA_FILE = "maven-metadata.xml"
    DEFAULT_PACKAGING = "jar"
    PACKAGING_SEARCH_ORDER = ["jar", "aar", "srcaar"]
    PACKAGING_EXTENSION_OVERRIDES = {"srcaar": "aar", "bundle": "jar"}
    EXCLUDED_PACKAGING = ["pom"]
    SKIPPED_SCOPES = ["test", "provided", "system"]
    SNAPSHOT_SUFFIX = "-SNAPSHOT"

    # HTTP
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_CACHE_TTL_SEC = 300
    METADATA_CACHE_TTL_SEC = 600

    # Resolver bounds
    MAX_SETTLE_PASSES = 16
    MAX_RESOLUTION_PASSES = 32
    MAX_UPGRADE_CANDIDATES = 16
    MAX_UPGRADE_TRIALS = 256

    # Defaults of the property map
    DEFAULT_USE_MAVEN_LOCAL_REPO = True
    DEFAULT_USE_REMOTE_MAVEN_REPOS = True
    DEFAULT_USE_JETIFIER = False
    TRUE_VALUES = ["1", "true", "yes", "on"]
    FALSE_VALUES = ["0", "false", "no", "off"]
