class Settings:
    PROJECT_NAME: str = "rapidread"
    DEBUG: bool = False
    LOG_DIR: str = "log"
    LOG_FILE: str = "rapidread.log"
    LOG_TO_FILE: bool = True
    CONTENT_DIR: str = "content"
    MIN_RATE: int = 100
    MAX_RATE: int = 1000
    DEFAULT_RATE: int = 300
    QUIZ_DELAY_MS: int = 1000
    GENERATION_DELAY_MS: int = 2000
    QUIZ_SIZE: int = 3
    SESSION_COOKIE_NAME: str = "reader_session_id"
    SESSION_TIMEOUT_MINUTES: int = 120


settings = Settings()
