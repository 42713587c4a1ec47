"""Stub directory gateway."""

from chat_redirects.directory.stub.client import StubDirectoryGateway

__all__ = ["StubDirectoryGateway"]
