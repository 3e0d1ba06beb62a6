"""
Shared fixtures: an in-memory stand-in for the B2 API.

FakeB2 answers the native API over httpx.MockTransport, records every
request it sees, and can be told to fail specific operations.
"""

import hashlib
import json
import threading
import time
from typing import Any, Callable, Optional
from urllib.parse import unquote

import httpx
import pytest

from b2store.core.storage import BucketIdentity, Credentials
from b2store.infrastructure.b2 import B2Config, B2StorageClient

API_URL = "https://api005.backblazeb2.com"
DOWNLOAD_URL = "https://f005.backblazeb2.com"
UPLOAD_HOST = "https://pod-000-1007-13.backblaze.com"


class FakeB2:
    """Minimal B2 native API, enough for the client's protocol."""

    def __init__(self) -> None:
        self.api_url = API_URL
        self.download_url = DOWNLOAD_URL
        self.files: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.calls: list[str] = []
        self.failures: dict[str, tuple[int, Any]] = {}
        self.part_failures: dict[int, tuple[int, Any]] = {}
        self.auth_delay = 0.0
        self.part_delays: dict[int, float] = {}
        self._counter = 0
        self._lock = threading.Lock()

    # -- helpers for assertions ------------------------------------------

    def count(self, operation: str) -> int:
        return self.calls.count(operation)

    def requests_for(self, operation: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.rsplit("/", 1)[-1] == operation
                or f"/{operation}/" in r.url.path]

    def json_body(self, operation: str, index: int = 0) -> dict[str, Any]:
        return json.loads(self.requests_for(operation)[index].content)

    def read_timeout(self, operation: str, index: int = 0) -> Optional[float]:
        """Read timeout the client attached to a recorded request."""
        return self.requests_for(operation)[index].extensions["timeout"]["read"]

    # -- transport ---------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        operation = self._operation(request)
        with self._lock:
            self.requests.append(request)
            self.calls.append(operation)
            self._counter += 1
            counter = self._counter

        if operation in self.failures:
            status, body = self.failures[operation]
            return self._respond(status, body)

        route: Optional[Callable[[httpx.Request, int], httpx.Response]] = getattr(
            self, f"_{operation}", None
        )
        if route is None:
            return self._respond(404, {"status": 404, "code": "not_found", "message": operation})
        return route(request, counter)

    @staticmethod
    def _operation(request: httpx.Request) -> str:
        path = request.url.path
        if "/b2_upload_file/" in path:
            return "b2_upload_file"
        if "/b2_upload_part/" in path:
            return "b2_upload_part"
        return path.rsplit("/", 1)[-1]

    @staticmethod
    def _respond(status: int, body: Any) -> httpx.Response:
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body or b"")

    # -- operations --------------------------------------------------------

    def _b2_authorize_account(self, request, counter):
        if self.auth_delay:
            time.sleep(self.auth_delay)
        return httpx.Response(200, json={
            "accountId": "e2e1bbf8df6f",
            "authorizationToken": "account-token",
            "apiUrl": self.api_url,
            "downloadUrl": self.download_url,
        })

    def _b2_get_upload_url(self, request, counter):
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "bucketId": body["bucketId"],
            "uploadUrl": f"{UPLOAD_HOST}/b2api/v2/b2_upload_file/{body['bucketId']}/c{counter}",
            "authorizationToken": f"upload-token-{counter}",
        })

    def _b2_upload_file(self, request, counter):
        file_name = unquote(request.headers["X-Bz-File-Name"])
        record = {
            "fileId": f"file-{counter}",
            "fileName": file_name,
            "contentLength": len(request.content),
            "contentSha1": request.headers["X-Bz-Content-Sha1"],
            "contentType": request.headers["Content-Type"],
            "action": "upload",
            "uploadTimestamp": 1700000000000,
            "fileInfo": {
                key[len("x-bz-info-"):]: value
                for key, value in request.headers.items()
                if key.lower().startswith("x-bz-info-")
            },
        }
        self.files.append(record)
        return httpx.Response(200, json=record)

    def _b2_start_large_file(self, request, counter):
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "fileId": "large-file-1",
            "fileName": body["fileName"],
            "contentType": body["contentType"],
            "fileInfo": body.get("fileInfo", {}),
            "action": "start",
        })

    def _b2_get_upload_part_url(self, request, counter):
        body = json.loads(request.content)
        return httpx.Response(200, json={
            "fileId": body["fileId"],
            "uploadUrl": f"{UPLOAD_HOST}/b2api/v2/b2_upload_part/{body['fileId']}/c{counter}",
            "authorizationToken": f"part-token-{counter}",
        })

    def _b2_upload_part(self, request, counter):
        part_number = int(request.headers["X-Bz-Part-Number"])
        if part_number in self.part_delays:
            time.sleep(self.part_delays[part_number])
        if part_number in self.part_failures:
            status, body = self.part_failures[part_number]
            return self._respond(status, body)
        return httpx.Response(200, json={
            "fileId": "large-file-1",
            "partNumber": part_number,
            "contentLength": len(request.content),
            "contentSha1": hashlib.sha1(request.content).hexdigest(),
        })

    def _b2_finish_large_file(self, request, counter):
        body = json.loads(request.content)
        start = json.loads(self.requests_for("b2_start_large_file")[0].content)
        total = sum(len(r.content) for r in self.requests_for("b2_upload_part"))
        return httpx.Response(200, json={
            "fileId": body["fileId"],
            "fileName": start["fileName"],
            "contentLength": total,
            "contentSha1": "none",
            "contentType": start["contentType"],
            "action": "upload",
            "fileInfo": start.get("fileInfo", {}),
        })

    def _b2_cancel_large_file(self, request, counter):
        body = json.loads(request.content)
        return httpx.Response(200, json={"fileId": body["fileId"]})

    def _b2_list_file_names(self, request, counter):
        body = json.loads(request.content)
        matches = [
            f for f in sorted(self.files, key=lambda f: f["fileName"])
            if f["fileName"].startswith(body.get("prefix", ""))
            and f["fileName"] >= body.get("startFileName", "")
        ]
        return httpx.Response(200, json={
            "files": matches[: body.get("maxFileCount", 100)],
            "nextFileName": None,
        })

    def _b2_delete_file_version(self, request, counter):
        body = json.loads(request.content)
        self.files = [f for f in self.files if f["fileId"] != body["fileId"]]
        return httpx.Response(200, json=body)


def make_config(**overrides) -> B2Config:
    values = dict(
        credentials=Credentials(key_id="key-id", application_key="app-key"),
        bucket=BucketIdentity(bucket_id="bucket-123", bucket_name="media"),
    )
    values.update(overrides)
    return B2Config(**values)


@pytest.fixture
def fake_b2() -> FakeB2:
    return FakeB2()


@pytest.fixture
def http_client(fake_b2) -> httpx.Client:
    client = httpx.Client(transport=httpx.MockTransport(fake_b2.handler))
    yield client
    client.close()


@pytest.fixture
def b2_config() -> B2Config:
    return make_config()


@pytest.fixture
def client(b2_config, http_client) -> B2StorageClient:
    return B2StorageClient(b2_config, http=http_client)


@pytest.fixture
def config_factory() -> Callable[..., B2Config]:
    """Build a B2Config with test credentials and any overrides."""
    return make_config
