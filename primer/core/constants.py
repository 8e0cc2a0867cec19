"""
Primer Constants

Naming prefixes, ports, labels and annotation keys shared by the
resource generators and the reconciliation kernel.
"""

# ==================== Export custom resource ====================

EXPORT_GROUP = "primer.gitops.io"
EXPORT_VERSION = "v1alpha1"
EXPORT_API_VERSION = f"{EXPORT_GROUP}/{EXPORT_VERSION}"
EXPORT_KIND = "Export"
EXPORT_PLURAL = "exports"

# ==================== Naming ====================

RESOURCE_PREFIX = "primer-export"
PART_OF_LABEL_VALUE = "primer-export"
TLS_SECRET_SUFFIX = "-tls"

# ==================== Condition vocabulary ====================

CONDITION_RECONCILED = "Reconciled"
REASON_COMPLETE = "Complete"
REASON_ERROR = "Error"
MESSAGE_COMPLETE = "Reconcile complete"

# ==================== Workload settings ====================

APP_PORT = 8080
APP_PORT_NAME = "primer"
PROXY_PORT = 8888
PROXY_PORT_NAME = "oauth-proxy"
DOWNLOADER_PORT_NAME = "downloader"

OUTPUT_VOLUME = "output"
OUTPUT_MOUNT_PATH = "/output"
SSH_KEYS_VOLUME = "sshkeys"
SSH_KEYS_MOUNT_PATH = "/keys"
SERVE_MOUNT_PATH = "/var/www/html"
PROXY_TLS_VOLUME = "primer-oauth-tls"
PROXY_TLS_MOUNT_PATH = "/etc/tls/private"
PROXY_SECRET_VOLUME = "secret-primer-proxy"
PROXY_SECRET_MOUNT_PATH = "/etc/proxy/secrets"

JOB_COMMAND = ["/bin/sh", "-c", "/committer.sh"]

SSH_KEYS_MODE = 0o644
SECRET_VOLUME_MODE = 0o644

VOLUME_CLAIM_SIZE = "1Gi"

SESSION_SECRET_KEY = "session_secret"
SESSION_SECRET_LENGTH = 43
SESSION_SECRET_DIGITS = 10

# ==================== Platform annotations and labels ====================

OAUTH_REDIRECT_ANNOTATION_PREFIX = "serviceaccounts.openshift.io/oauth-redirectreference."
SERVING_CERT_ANNOTATION = "service.alpha.openshift.io/serving-cert-secret-name"
INGRESS_POLICY_GROUP_LABEL = "network.openshift.io/policy-group"
INGRESS_POLICY_GROUP_VALUE = "ingress"

LABEL_NAME = "app.kubernetes.io/name"
LABEL_COMPONENT = "app.kubernetes.io/component"
LABEL_PART_OF = "app.kubernetes.io/part-of"

# ==================== Default images ====================

DEFAULT_EXPORT_IMAGE = "quay.io/konveyor/gitops-primer-export:latest"
DEFAULT_DOWNLOADER_IMAGE = "quay.io/konveyor/gitops-primer:latest"
DEFAULT_OAUTH_IMAGE = "quay.io/openshift/origin-oauth-proxy:4.7"
