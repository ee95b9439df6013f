"""Clients for local persistence and the remote backup API."""

from .credentials import CredentialStore, FileCredentialStore, MemoryCredentialStore
from .gist_client import GistClient
from .local_store import LocalStore, sort_collections

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "GistClient",
    "LocalStore",
    "MemoryCredentialStore",
    "sort_collections",
]
