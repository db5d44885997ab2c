import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///tapsprint.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Sprint timing (seconds unless noted)
    SPRINT_COUNTDOWN_SEC = int(os.environ.get('SPRINT_COUNTDOWN_SEC', '5'))
    SPRINT_DURATION_MS = int(os.environ.get('SPRINT_DURATION_MS', '15000'))
    # How long a finished session stays in memory before eviction
    SPRINT_EVICTION_GRACE_SEC = int(os.environ.get('SPRINT_EVICTION_GRACE_SEC', '30'))
    # Evict sessions nobody joined after this long. 0 disables.
    SPRINT_IDLE_TIMEOUT_SEC = int(os.environ.get('SPRINT_IDLE_TIMEOUT_SEC', '300'))
    # Attempts per result row before the write is logged and dropped
    SPRINT_RESULT_WRITE_ATTEMPTS = int(os.environ.get('SPRINT_RESULT_WRITE_ATTEMPTS', '2'))
    # Identity tokens (HS256 JWT) issued by the auth collaborator
    TOKEN_ALGORITHM = 'HS256'
    TOKEN_TTL_SEC = int(os.environ.get('TOKEN_TTL_SEC', str(24 * 3600)))
