import json
import re

import httpx
import pytest

from atelier_catalog.clients.credentials import MemoryCredentialStore
from atelier_catalog.clients.gist_client import GistClient
from atelier_catalog.clients.local_store import LocalStore
from atelier_catalog.models.catalog import Collection, Item
from atelier_catalog.services.sync_service import SyncService
from atelier_catalog.settings import AtelierSettings

API_BASE = "https://api.test"
RAW_HOST = "raw.test"
GOOD_TOKEN = "good-token"


class FakeGistServer:
    """In-memory stand-in for the GitHub Gist API, served through httpx.MockTransport."""

    def __init__(self, token: str = GOOD_TOKEN):
        self.token = token
        self.login = "atelier-user"
        self.gists: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        # Serve truncated file content in gist metadata
        self.truncate = False
        # Statuses returned (in order) before normal handling resumes
        self.queued_failures: list[int] = []
        self._next_id = 1

    def add_gist(
        self,
        description: str,
        files: dict[str, str],
        gist_id: str | None = None,
        updated_at: str = "2026-01-02T03:04:05Z",
    ) -> str:
        if gist_id is None:
            gist_id = f"gist{self._next_id}"
            self._next_id += 1
        self.gists[gist_id] = {
            "id": gist_id,
            "description": description,
            "files": dict(files),
            "updated_at": updated_at,
        }
        return gist_id

    def calls(self, method: str, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def _full(self, gist: dict) -> dict:
        files = {}
        for name, content in gist["files"].items():
            files[name] = {
                "filename": name,
                "raw_url": f"https://{RAW_HOST}/{gist['id']}/{name}",
                "truncated": self.truncate,
                "content": content[: len(content) // 2] if self.truncate else content,
            }
        return {**gist, "files": files}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.queued_failures:
            return httpx.Response(self.queued_failures.pop(0), json={"message": "boom"})
        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return httpx.Response(401, json={"message": "Bad credentials"})

        path = request.url.path
        if request.url.host == RAW_HOST:
            gist_id, name = path.strip("/").split("/", 1)
            return httpx.Response(200, text=self.gists[gist_id]["files"][name])

        if path == "/user" and request.method == "GET":
            return httpx.Response(200, json={"login": self.login})

        if path == "/gists" and request.method == "GET":
            page = int(request.url.params.get("page", "1"))
            per_page = int(request.url.params.get("per_page", "30"))
            summaries = [
                {"id": g["id"], "description": g["description"]}
                for g in self.gists.values()
            ]
            start = (page - 1) * per_page
            return httpx.Response(200, json=summaries[start : start + per_page])

        if path == "/gists" and request.method == "POST":
            body = json.loads(request.content)
            gist_id = self.add_gist(
                body["description"],
                {name: f["content"] for name, f in body["files"].items()},
            )
            return httpx.Response(201, json=self._full(self.gists[gist_id]))

        match = re.fullmatch(r"/gists/([^/]+)", path)
        if match:
            gist = self.gists.get(match.group(1))
            if gist is None:
                return httpx.Response(404, json={"message": "Not Found"})
            if request.method == "PATCH":
                body = json.loads(request.content)
                for name, f in body["files"].items():
                    gist["files"][name] = f["content"]
                gist["updated_at"] = "2026-02-03T04:05:06Z"
            return httpx.Response(200, json=self._full(gist))

        return httpx.Response(404, json={"message": "Not Found"})


def make_collection(
    collection_id: str,
    order: int | None = None,
    created_at: int = 1_700_000_000_000,
    items: int = 2,
    **fields,
) -> Collection:
    return Collection(
        id=collection_id,
        order=order,
        created_at=created_at,
        item_count=items,
        items=[
            Item(id=f"{collection_id}-item-{i}", original_order=i + 1, name=f"Image {i + 1}")
            for i in range(items)
        ],
        **fields,
    )


@pytest.fixture
def settings(tmp_path):
    return AtelierSettings(_env_file=None, data_dir=tmp_path / "data", api_base=API_BASE)


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "catalog.sqlite3")


@pytest.fixture
def gist_server():
    return FakeGistServer()


@pytest.fixture
def gist_client(gist_server):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(gist_server))
    return GistClient(api_base=API_BASE, http_client=http_client)


@pytest.fixture
def credentials():
    return MemoryCredentialStore(token=GOOD_TOKEN)


@pytest.fixture
def sync(gist_client, credentials, settings):
    return SyncService(gist_client, credentials, settings, retry_delay=0)


@pytest.fixture(name="make_collection")
def make_collection_fixture():
    return make_collection
