"""Default configuration values."""

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_COMMAND_GROUP = "net-get"
DEFAULT_TOPIC_PREFIX = "net-get."

# Config file names searched in a project root (in priority order)
CONFIG_FILENAMES = ["netget.yaml", "netget.yml", "netget.jsonc", "netget.json"]
GLOBAL_CONFIG_DIR = ".netget"

# Headless capture renderer
DEFAULT_WAIT_TIMEOUT_MS = 30_000
DEFAULT_WAIT_TIME_MS = 3_000
DEFAULT_SCREENSHOT_SELECTOR = "body"

# Markup-to-image renderers
DEFAULT_IMAGE_MAX_WIDTH = "100%"

# Example preset functions operators can copy into their configuration
EXAMPLE_PRESET_FNS = [
    {
        "name": "hmac_sha256",
        "args": "key, content",
        "body": (
            "return _hmac.new(key.encode(), content.encode(), _hashlib.sha256).hexdigest()"
        ),
        "is_async": False,
    },
    {
        "name": "md5",
        "args": "content",
        "body": "return _hashlib.md5(content.encode()).hexdigest()",
        "is_async": False,
    },
    {
        "name": "get_url",
        "args": "url",
        "body": "response = await _http.get(url)\nreturn response.text",
        "is_async": True,
    },
]
