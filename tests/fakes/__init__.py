# Fake implementations for testing

from .fake_registry import FakeImage, FakeLayer, FakePuller

__all__ = ["FakeImage", "FakeLayer", "FakePuller"]
