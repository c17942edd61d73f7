import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Lobby
    LOBBY_CODE_LENGTH = int(os.environ.get("LOBBY_CODE_LENGTH", "6"))

    # Phase deadlines (0 disables the timer, phases then only advance on the barrier)
    DESCRIBE_DURATION_SEC = int(os.environ.get("DESCRIBE_DURATION_SEC", "60"))
    VOTE_DURATION_SEC = int(os.environ.get("VOTE_DURATION_SEC", "45"))
