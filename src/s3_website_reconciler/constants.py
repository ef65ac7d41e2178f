"""Constants for the S3 website reconciler."""

CONTROLLER = "s3-website-reconciler"

# Defaults
DEFAULT_REGION = "us-east-1"
DEFAULT_INDEX_DOCUMENT = "index.html"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 4
DEFAULT_RETRY_BASE_DELAY = 0.5
DEFAULT_RETRY_MAX_DELAY = 8.0

# Policy language version understood by S3
POLICY_VERSION = "2012-10-17"
POLICY_ACTION_GET_OBJECT = "s3:GetObject"

# Resource kinds
KIND_BUCKET = "Bucket"
KIND_WEBSITE = "WebsiteConfiguration"
KIND_BUCKET_POLICY = "BucketPolicy"
KIND_PUBLIC_ACCESS_BLOCK = "PublicAccessBlock"

# Output names
OUTPUT_WEBSITE_ENDPOINT = "website_endpoint"
OUTPUT_WEBSITE_URL = "website_url"
OUTPUT_BUCKET_NAME = "bucket_name"
OUTPUT_BUCKET_ARN = "bucket_arn"
OUTPUT_BUCKET_DOMAIN = "bucket_regional_domain_name"
OUTPUT_REGION = "region"

OUTPUT_NAMES = (
    OUTPUT_WEBSITE_ENDPOINT,
    OUTPUT_WEBSITE_URL,
    OUTPUT_BUCKET_NAME,
    OUTPUT_BUCKET_ARN,
    OUTPUT_BUCKET_DOMAIN,
    OUTPUT_REGION,
)

# Regions whose website endpoint uses "s3-website-<region>" instead of "s3-website.<region>"
LEGACY_WEBSITE_ENDPOINT_REGIONS = frozenset(
    {
        "us-east-1",
        "us-west-1",
        "us-west-2",
        "ap-southeast-1",
        "ap-southeast-2",
        "ap-northeast-1",
        "eu-west-1",
        "sa-east-1",
        "us-gov-west-1",
    }
)

# Provider error codes
ERROR_BUCKET_ALREADY_EXISTS = "BucketAlreadyExists"
ERROR_BUCKET_ALREADY_OWNED = "BucketAlreadyOwnedByYou"
ERROR_INVALID_BUCKET_NAME = "InvalidBucketName"
ERROR_NO_SUCH_BUCKET = "NoSuchBucket"
ERROR_NO_SUCH_POLICY = "NoSuchBucketPolicy"
ERROR_NO_SUCH_WEBSITE = "NoSuchWebsiteConfiguration"
ERROR_NO_SUCH_PUBLIC_ACCESS_BLOCK = "NoSuchPublicAccessBlockConfiguration"
ERROR_BUCKET_NOT_EMPTY = "BucketNotEmpty"

TRANSIENT_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "SlowDown",
        "RequestTimeout",
        "RequestTimeoutException",
        "ServiceUnavailable",
        "InternalError",
        "OperationAborted",
    }
)
TRANSIENT_HTTP_STATUSES = frozenset({429, 500, 502, 503, 504})

# Event reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_NO_CHANGES = "NoChanges"
EVENT_REASON_DRIFT_DETECTED = "DriftDetected"
EVENT_REASON_OPERATION_APPLIED = "OperationApplied"
EVENT_REASON_OPERATION_FAILED = "OperationFailed"
EVENT_REASON_RETRYING = "Retrying"
EVENT_REASON_PARTIAL_APPLY = "PartialApply"
EVENT_REASON_OBJECT_UPLOADED = "ObjectUploaded"
EVENT_REASON_OBJECT_DELETED = "ObjectDeleted"
