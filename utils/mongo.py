"""
MongoDB store for API request logs.
"""
import logging
import threading
from datetime import datetime, timezone

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

logger = logging.getLogger(__name__)


class MongoLogStore:
    """
    Owns the MongoDB client used for request logging.

    Built once at startup by ``UtilsConfig`` and closed at process exit.
    The connection is opened lazily on first use; if MongoDB is unreachable
    the store marks itself unavailable and every later call is a no-op.
    """

    def __init__(self, uri, db_name, timeout_ms=3000):
        self.uri = uri
        self.db_name = db_name
        self.timeout_ms = timeout_ms
        self._client = None
        self._db = None
        self._available = None if uri else False
        self._lock = threading.Lock()

    @property
    def db(self):
        """Database handle, or None when MongoDB is unavailable."""
        if self._available is False:
            return None

        with self._lock:
            if self._db is None and self._available is not False:
                self._connect()
        return self._db

    def _connect(self):
        try:
            self._client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                connectTimeoutMS=self.timeout_ms
            )
            # Test connection
            self._client.admin.command('ping')
            self._db = self._client[self.db_name]
            self._available = True
            self._ensure_indexes()
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.warning("MongoDB connection failed, API logging disabled: %s", e)
            self._available = False
            self._db = None

    def _ensure_indexes(self):
        """Create necessary indexes for the api_logs collection."""
        try:
            api_logs = self._db.api_logs
            api_logs.create_index([("timestamp", -1)])
            api_logs.create_index([("endpoint", 1), ("timestamp", -1)])
            api_logs.create_index([("user_id", 1), ("timestamp", -1)])
            api_logs.create_index([("response_status", 1)])
        except PyMongoError as e:
            logger.warning("Error creating MongoDB indexes: %s", e)

    @property
    def is_available(self):
        return self.db is not None

    def log_api_request(self, endpoint, method, user_id, request_params,
                        response_status, execution_time_ms, results_count=None):
        """
        Log an API request to MongoDB.

        Args:
            endpoint: API endpoint path
            method: HTTP method (GET, POST, etc.)
            user_id: ID of the authenticated user
            request_params: Dictionary of request parameters
            response_status: HTTP response status code
            execution_time_ms: Execution time in milliseconds
            results_count: Number of results returned (optional)
        """
        db = self.db
        if db is None:
            return  # MongoDB not available, skip logging

        log_entry = {
            "endpoint": endpoint,
            "method": method,
            "user_id": user_id,
            "request_params": request_params,
            "response_status": response_status,
            "execution_time_ms": execution_time_ms,
            "timestamp": datetime.now(timezone.utc)
        }

        if results_count is not None:
            log_entry["results_count"] = results_count

        try:
            db.api_logs.insert_one(log_entry)
        except PyMongoError as e:
            logger.warning("Error logging to MongoDB: %s", e)

    def close(self):
        with self._lock:
            if self._client is not None:
                self._client.close()
            self._client = None
            self._db = None
