from __future__ import annotations


class FeedError(RuntimeError):
    pass


class ConfigError(FeedError):
    pass


class RpcError(FeedError):
    def __init__(self, method: str, message: str, code: int | None = None) -> None:
        super().__init__(f"{method} failed: {message}")
        self.method = method
        self.code = code


class CatalogError(FeedError):
    pass


class FeedStopTimeout(FeedError):
    pass


class FeedStalled(FeedError):
    pass
