import math
import os
import time
import asyncio
from dataclasses import dataclass
from typing import Dict
from fastapi import Request
from fastapi.responses import JSONResponse
import logging
from cachetools import TTLCache

logger = logging.getLogger("rate_limiter")

_RELAXED = os.getenv("APP_ENV", "local") in ("local", "test", "development")


@dataclass(frozen=True)
class RateLimitRule:
    max_requests: int
    window_seconds: int


RATE_LIMITS: Dict[str, RateLimitRule] = {
    "api": RateLimitRule(10000 if _RELAXED else 100, 60),
}

EXEMPT_PATHS = {"/health"}


class RateLimitMiddleware:
    """
    In-memory fixed-window rate limiter keyed by client IP.
    Per-client asyncio locks; client histories live in a TTLCache so memory stays bounded.
    """
    def __init__(self, rule: RateLimitRule = RATE_LIMITS["api"], bucket: str = "api"):
        self.bucket = bucket
        self.rate_limit = rule.max_requests
        self.window_size = rule.window_seconds
        self.clients = TTLCache(maxsize=10000, ttl=self.window_size)  # IP -> list of timestamps
        self.global_lock = asyncio.Lock()
        self.client_locks = {}
        self.cleanup_task = None
        self._cleanup_lock = asyncio.Lock()

    async def _cleanup_loop(self):
        """Background task to prune locks of clients that aged out of the cache."""
        while True:
            await asyncio.sleep(self.window_size)
            try:
                async with self.global_lock:
                    current_keys = list(self.client_locks.keys())

                orphans = [ip for ip in current_keys if ip not in self.clients]

                if orphans:
                    async with self.global_lock:
                        for ip in orphans:
                            # A new request may have re-registered the client meanwhile
                            if ip not in self.clients and ip in self.client_locks:
                                del self.client_locks[ip]
            except Exception as e:
                logger.error(f"Rate limit cleanup failed: {e}")

    @staticmethod
    def client_ip(request: Request):
        x_forwarded = request.headers.get("x-forwarded-for")
        if x_forwarded:
            return x_forwarded.split(",")[0].strip()
        if request.headers.get("x-real-ip"):
            return request.headers.get("x-real-ip").strip()
        if request.client and request.client.host:
            return request.client.host
        return None

    async def __call__(self, request: Request, call_next):
        if self.cleanup_task is None:
            async with self._cleanup_lock:
                if self.cleanup_task is None:
                    self.cleanup_task = asyncio.create_task(self._cleanup_loop())

        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = self.client_ip(request)
        if not client_ip:
            # Unknown clients would otherwise share one bucket
            logger.warning("Rate limit skipped due to missing client IP (blocking request)")
            return JSONResponse(
                status_code=400,
                content={"detail": "Client IP required for rate limiting."}
            )

        async with self.global_lock:
            if client_ip not in self.client_locks:
                self.client_locks[client_ip] = asyncio.Lock()
                # Pre-register so the cleaner does not drop the lock before first use
                if client_ip not in self.clients:
                    self.clients[client_ip] = []

            client_lock = self.client_locks[client_ip]

        async with client_lock:
            current_time = time.time()

            history = self.clients.get(client_ip, [])
            history = [t for t in history if t > current_time - self.window_size]

            if len(history) >= self.rate_limit:
                self.clients[client_ip] = history
                retry_after = max(1, math.ceil(history[0] + self.window_size - current_time))
                logger.warning(f"Rate limit exceeded for IP: {client_ip} (bucket={self.bucket})")
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many requests. Please try again later."},
                    headers={"Retry-After": str(retry_after)},
                )

            history.append(current_time)
            self.clients[client_ip] = history

        return await call_next(request)
