"""
Remote backup sync.

Mirrors the whole catalog to a single private gist holding one JSON file.
There is no merge and no concurrency control: `upload` overwrites the
remote document, `download` returns it for the caller to overwrite the
local catalog. Two clients syncing at the same time race and the last
writer wins.
"""

from datetime import datetime
import json
import logging

from atelier_catalog.clients.credentials import CredentialStore
from atelier_catalog.clients.gist_client import GistClient
from atelier_catalog.models.catalog import Collection, dump_catalog, parse_catalog
from atelier_catalog.services.common.retry import async_retry_with_backoff
from atelier_catalog.settings import AtelierSettings, get_settings
from atelier_catalog.utils.errors import (
    AuthError,
    ContentShapeError,
    EmptyContentError,
    MalformedPayloadError,
    NetworkError,
    NotFoundError,
    ParseError,
    SizeLimitError,
    TruncatedPayloadError,
    ValidationError,
)
from atelier_catalog.utils.logging_config import PerformanceMonitor

logger = logging.getLogger(__name__)

HTML_PREFIXES = ("<!doctype html", "<html", "<head", "<body")


# -------------------- Content Checks --------------------


def looks_like_html(content: str) -> bool:
    """Heuristic for an error page served where JSON was expected."""
    head = content.lstrip()[:512].lower()
    if head.startswith(HTML_PREFIXES):
        return True
    return head.startswith("<") and "html" in head


def classify_parse_failure(content: str, error: json.JSONDecodeError) -> ParseError:
    """
    Decide whether a JSON failure looks like a cut-off payload.

    A failure at (or past) the last non-blank character, or inside a
    string that never closes, means the document simply stopped.
    """
    end = len(content.rstrip())
    if error.pos >= end or error.msg.startswith("Unterminated string"):
        return TruncatedPayloadError(
            f"Catalog JSON looks incomplete (parsing stopped at char {error.pos})",
            suggestion="The last upload was probably interrupted; upload again from a complete device",
        )
    return MalformedPayloadError(
        f"Catalog is not valid JSON: {error.msg} at line {error.lineno} column {error.colno}"
    )


def decode_catalog(content: str) -> list[Collection]:
    """
    Parse remote content into a catalog.

    Raises:
        EmptyContentError: Content is empty
        ContentShapeError: Content is HTML markup
        ParseError: Content is not valid JSON (truncated or malformed)
        ValidationError: Top level is not an array or a record is invalid
    """
    if not content or not content.strip():
        raise EmptyContentError("Remote backup is empty")
    if looks_like_html(content):
        raise ContentShapeError(
            "Remote backup returned an HTML page instead of JSON",
            suggestion="The token may have expired or a proxy intercepted the request; log in again",
        )
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise classify_parse_failure(content, e) from e
    return parse_catalog(data)


# -------------------- Service --------------------


class SyncService:
    """
    Full-catalog backup to a GitHub gist.

    State: the credential and the cached gist id, both kept in the injected
    credential store.
    """

    def __init__(
        self,
        client: GistClient,
        credentials: CredentialStore,
        settings: AtelierSettings | None = None,
        retry_delay: float = 1.0,
    ):
        """
        Args:
            client: Gist API client
            credentials: Where the token and cached gist id live
            settings: Backup naming and payload limits (global settings if None)
            retry_delay: Base backoff delay for remote reads
        """
        self.client = client
        self.credentials = credentials
        self.settings = settings or get_settings()
        self.retry_delay = retry_delay

    @property
    def is_logged_in(self) -> bool:
        return bool(self.credentials.get_token())

    @property
    def remote_id(self) -> str | None:
        return self.credentials.get_remote_id()

    def _require_token(self) -> str:
        token = self.credentials.get_token()
        if not token:
            raise AuthError("Not logged in", suggestion="Run 'atelier sync login' first")
        return token

    # -------------------- Session --------------------

    async def login(self, token: str) -> str:
        """
        Validate a token against the identity endpoint and keep it.

        Returns:
            The account login the token belongs to

        Raises:
            AuthError: If the token is rejected; nothing is stored
            NetworkError: If the service cannot be reached
        """
        token = token.strip()
        if not token:
            raise AuthError("Empty token")

        try:
            user = await self.client.get_user(token)
        except (AuthError, NotFoundError) as e:
            raise AuthError(
                "Login failed: token is invalid or lacks permission",
                suggestion="Create a token with the 'gist' scope",
            ) from e
        except NetworkError as e:
            # Any HTTP answer other than success rejects the token
            if e.status_code is None:
                raise
            raise AuthError(
                f"Login failed: identity check returned HTTP {e.status_code}",
                suggestion="Try again later or check the token",
            ) from e

        self.credentials.set_token(token)
        login = str(user.get("login", ""))
        logger.info(f"Logged in as {login or 'unknown user'}")
        return login

    def logout(self) -> None:
        """Forget the token and the cached gist id. Local data is untouched."""
        self.credentials.set_token(None)
        self.credentials.set_remote_id(None)
        logger.info("Logged out")

    # -------------------- Upload --------------------

    def serialize(self, catalog: list[Collection]) -> str:
        """
        Canonical JSON for upload, with pre-flight checks.

        Raises:
            ValidationError: If the document does not parse back to an array
            SizeLimitError: If it exceeds the hard payload ceiling
        """
        content = dump_catalog(catalog)

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Serialized catalog does not parse back: {e}") from e
        if not isinstance(parsed, list) or len(parsed) != len(catalog):
            raise ValidationError("Serialized catalog does not round-trip to an array")

        size = len(content.encode("utf-8"))
        if size > self.settings.max_payload_bytes:
            raise SizeLimitError(size, self.settings.max_payload_bytes)
        if size > self.settings.warn_payload_bytes:
            logger.warning(
                f"Catalog payload is {size / (1024 * 1024):.1f} MiB; "
                "consider compressing images before it reaches the upload limit"
            )
        return content

    async def upload(self, catalog: list[Collection]) -> str:
        """
        Overwrite the remote backup with the full catalog.

        Creates the backup gist on first upload and caches its id.

        Returns:
            The remote gist id
        """
        token = self._require_token()
        content = self.serialize(catalog)
        files = {self.settings.backup_filename: content}
        logger.info(f"Uploading {len(catalog)} collections ({len(content)} chars)")

        with PerformanceMonitor(logger, "Backup upload", collections=len(catalog)):
            gist_id = self.credentials.get_remote_id()
            if gist_id:
                try:
                    await self.client.update_gist(token, gist_id, files)
                    logger.info(f"Updated backup gist {gist_id}")
                    return gist_id
                except NotFoundError:
                    logger.warning(f"Backup gist {gist_id} no longer exists; creating a new one")
                    self.credentials.set_remote_id(None)

            gist = await self.client.create_gist(
                token, self.settings.backup_description, files, public=False
            )
            gist_id = gist.get("id")
            if not gist_id:
                raise NetworkError("Backup gist was created but no id was returned")
            self.credentials.set_remote_id(gist_id)
            logger.info(f"Created backup gist {gist_id}")
            return gist_id

    # -------------------- Download --------------------

    async def _read(self, func, description: str):
        return await async_retry_with_backoff(
            func, base_delay=self.retry_delay, description=description
        )

    async def discover(self) -> str | None:
        """
        Find the backup gist by its description and cache its id.

        Returns:
            The gist id, or None when no backup exists yet
        """
        token = self._require_token()
        gists = await self._read(lambda: self.client.list_gists(token), "Gist listing")
        for gist in gists:
            if gist.get("description") == self.settings.backup_description:
                gist_id = gist.get("id")
                if gist_id:
                    self.credentials.set_remote_id(gist_id)
                    logger.info(f"Found backup gist {gist_id}")
                    return gist_id
        logger.info(f"No backup gist among {len(gists)} gists")
        return None

    async def download(self) -> list[Collection]:
        """
        Fetch the remote catalog.

        An absent backup is a valid state and yields an empty list.
        """
        token = self._require_token()

        gist_id = self.credentials.get_remote_id() or await self.discover()
        if not gist_id:
            return []

        with PerformanceMonitor(logger, "Backup download", gist=gist_id):
            try:
                gist = await self._read(
                    lambda: self.client.get_gist(token, gist_id), "Gist fetch"
                )
            except NotFoundError:
                logger.warning(f"Backup gist {gist_id} not found; clearing cached id")
                self.credentials.set_remote_id(None)
                return []

            file = (gist.get("files") or {}).get(self.settings.backup_filename)
            if not file:
                logger.warning(f"Backup gist has no {self.settings.backup_filename}")
                return []

            content = file.get("content")
            if file.get("truncated") or content is None:
                raw_url = file.get("raw_url")
                if not raw_url:
                    raise NetworkError("Backup content is truncated and has no raw URL")
                logger.info("Backup content truncated in metadata; fetching raw file")
                content = await self._read(
                    lambda: self.client.fetch_raw(token, raw_url), "Raw backup fetch"
                )

        catalog = decode_catalog(content)
        logger.info(f"Downloaded {len(catalog)} collections")
        return catalog

    async def last_synced_at(self) -> datetime | None:
        """Remote backup's last update time, or None when unknown."""
        token = self.credentials.get_token()
        gist_id = self.credentials.get_remote_id()
        if not token or not gist_id:
            return None

        try:
            gist = await self.client.get_gist(token, gist_id)
        except (NotFoundError, NetworkError, AuthError) as e:
            logger.debug(f"Could not read backup timestamp: {e}")
            return None

        updated_at = gist.get("updated_at")
        if not updated_at:
            return None
        try:
            return datetime.fromisoformat(updated_at.replace("Z", "+00:00"))
        except ValueError:
            return None
