import os
import tempfile

# In-memory store and throwaway media directory for tests
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("MEDIA_DIR", tempfile.mkdtemp(prefix="smartcafe-media-"))
os.environ.setdefault("BILL_DIR", tempfile.mkdtemp(prefix="smartcafe-bills-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")
