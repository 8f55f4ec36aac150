from os import getenv

PORT: int = int(getenv("PORT", 8000))

# By default we want the file server to be reachable from everywhere
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

LOG_REQUESTS: bool = getenv("SERVEFILE_LOG_REQUESTS", "1") == "1"

# One of Debug, Info, Warning, Error
LOG_LEVEL: str = getenv("SERVEFILE_LOG_LEVEL", "Info")

# The document served in place of a directory
INDEX: str = getenv("SERVEFILE_INDEX", "index.html")

# EOF
