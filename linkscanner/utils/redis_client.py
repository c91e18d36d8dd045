import ssl
from functools import lru_cache

import redis

from linkscanner.core.config import settings


@lru_cache(maxsize=1)
def get_redis_client():
    options = {"decode_responses": True}
    if settings.REDIS_URL.startswith("rediss://"):
        options["ssl_cert_reqs"] = ssl.CERT_NONE
    return redis.Redis(connection_pool=redis.ConnectionPool.from_url(settings.REDIS_URL, **options))
