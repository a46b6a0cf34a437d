"""Constants module for deploybox.

All timeout values and shared constants are defined here (SSOT).
"""

from __future__ import annotations

# === Docker Timeouts (seconds) ===
DOCKER_COMMAND_TIMEOUT = 30  # Per-request deadline for every daemon call
DEFAULT_API_VERSION = "auto"  # Negotiate with the daemon
MIN_API_VERSION = (1, 30)  # Oldest Engine API that accepts host config mounts

# === Container defaults ===
DEFAULT_COMMAND = "tail -f /dev/null"  # Keeps probe and final containers alive
DEFAULT_TAG = "latest"
DEFAULT_NOPROXY_HOSTS = ("localhost", "127.0.0.1")
DEFAULT_UNAME = "deployer"
DEFAULT_GNAME = "deployer"
ROOT_USER = "0:0"  # Final container process always runs as root
IMAGE_REPOSITORY_PREFIX = "compute-deployer_dev_"
CONTAINER_NAME_PREFIX = "deployer_"
WORKDIR_PREFIX = "cc_"
WORKDIR_NAME_ATTEMPTS = 10000

# === Container paths ===
SERVICE_USER = "shinto"  # Account the deployer images are built around
CONTAINER_LOG_DIR = "/var/log/deployer"
CONTAINER_SOURCE_DIR = f"/home/{SERVICE_USER}/deployer"
CONTAINER_HOST_DIR = f"/home/{SERVICE_USER}/host"
CONTAINER_PASSWD = "/etc/passwd"
CONTAINER_GROUP = "/etc/group"
MOUNT_PROPAGATION = "rprivate"

# === Host workdir layout ===
LOG_SUBDIR = "log"
SRC_SUBDIR = "src"
PASSWD_FILE = "passwd"
GROUP_FILE = "group"
REPO_CONFIG_FILE = "repoconfig.json"
INSTALL_MANIFEST_FILE = "install_json.json"

# === Generated repoconfig defaults ===
DEFAULT_REPO_BASE_URL = "http://artifactory-slc.oraclecorp.com/artifactory/opc-delivery-release"
DEFAULT_LOGSTASH_HOST = "dummy.us.oracle.com"
DEFAULT_LOGSTASH_PORT = 4242

# === Environment ===
NOPROXY_ENV = "no_proxy"
FORCE_ROOT_ENV = "C_FORCE_ROOT=1"  # Lets celery-style tooling run as root
