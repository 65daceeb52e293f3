from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Logging
LOG_LEVEL = config.get_str("LOG_LEVEL", "info")
LOG_FILE = config.get_str("LOG_FILE", "")

# Feishu Open API (document service)
FEISHU_OPEN_API = config.get_url("FEISHU_OPEN_API", "https://open.feishu.cn")
# Base for human-followable document links
FEISHU_DOC_BASE = config.get_url("FEISHU_DOC_BASE", "https://feishu.cn")
FEISHU_HOME_PAGE = "https://www.feishu.cn/drive/home/"

# Timeout configuration
# Connection timeout: Time to establish TCP connection
CONNECT_TIMEOUT = config.get_float("CONNECT_TIMEOUT", 10.0, minimum=0.1)
# Request timeout: Total timeout for one API call, image download or upload
REQUEST_TIMEOUT = config.get_float("REQUEST_TIMEOUT", 60.0, minimum=0.1)

# Block assembly (fixed by the document service's payload limits)
BLOCK_BATCH_SIZE = 50
BLOCK_TYPE_TEXT = 2
BLOCK_TYPE_IMAGE = 27
# Insertion index meaning "append at end of document"
APPEND_INDEX = -1

# Media upload
UPLOAD_PARENT_TYPE = "docx_image"
DEFAULT_IMAGE_NAME = "image.png"
# Per-batch upload fan-out; the batch cap already bounds it at 50
MEDIA_UPLOAD_CONCURRENCY = config.get_int("MEDIA_UPLOAD_CONCURRENCY", 50, minimum=1)

# Token lifecycle (seconds)
REFRESH_BUFFER_SECONDS = 300
DEFAULT_EXPIRES_IN = 7200

# OAuth relay endpoint (exchanges refresh tokens on our behalf)
RELAY_ENDPOINT = config.get_str("RELAY_ENDPOINT", "")

# Credential storage
CREDENTIALS_FILE = config.get_path("CREDENTIALS_FILE", "~/.feishu-clipper/credentials.json")
