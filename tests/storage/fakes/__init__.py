# Fake implementations for testing

from .fake_bucket import InMemoryBucket

__all__ = ["InMemoryBucket"]
