"""Image round-trip between local embeds and an image hosting repository.

Strategy:
- On push: every local image reference (``![[img.png]]``, ``![[img.png|alt]]``
  or ``![alt](relative/img.png)``) is resolved to bytes in the vault, stored in
  the hosting repository under ``images/<sha256[:16]>.<ext>`` (skipped when
  that blob already exists) and replaced by a hidden marker line followed by a
  standard markdown image pointing at the hosted copy.
- On pull: each marker + image pair is turned back into a local embed of the
  reference recorded in the marker. Hosted images without a marker are left
  alone.

The marker is visible to anyone reading the raw remote body. It is kept for
compatibility with files already synced this way.
"""

from __future__ import annotations

import base64
import hashlib
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import unquote

from .errors import ConfigurationError, GitHubAPIError
from .github_api import GitHubClient
from .logging import get_logger
from .store import LocalStore, normalize_path

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "svg")
DEFAULT_EXTENSION = "png"
ASSET_PREFIX = "images"
DIGEST_PREFIX_LENGTH = 16
HTTP_NOT_FOUND = 404

MARKDOWN_IMAGE = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")
EMBED_IMAGE = re.compile(r"!\[\[([^\]|]+)(?:\|([^\]]*))?\]\]")
MARKER_PREFIX = "<!-- obsidian-local: "
MARKER_PAIR = re.compile(r"<!-- obsidian-local: ([^>]+) -->\r?\n!\[[^\]]*\]\([^)]+\)")


def is_local_target(target: str) -> bool:
    t = target.strip()
    return not (t.startswith("http://") or t.startswith("https://") or t.startswith("data:"))


def has_local_images(content: str) -> bool:
    if EMBED_IMAGE.search(content):
        return True
    return any(is_local_target(m.group(2)) for m in MARKDOWN_IMAGE.finditer(content))


def restore_local_images(content: str) -> str:
    """Invert the push rewrite: marker + hosted image -> local embed."""
    return MARKER_PAIR.sub(lambda m: f"![[{m.group(1).strip()}]]", content)


def content_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def git_blob_sha(data: bytes) -> str:
    """The sha GitHub reports for a blob holding ``data``."""
    header = f"blob {len(data)}\0".encode()
    return hashlib.sha1(header + data, usedforsecurity=False).hexdigest()


def _extension(path: str) -> str:
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    return suffix or DEFAULT_EXTENSION


def asset_filename(data: bytes, source_path: str) -> str:
    return f"{content_digest(data)[:DIGEST_PREFIX_LENGTH]}.{_extension(source_path)}"


def _is_image_path(path: str) -> bool:
    return PurePosixPath(path).suffix.lower().lstrip(".") in IMAGE_EXTENSIONS


def find_image_file(store: LocalStore, reference: str) -> str | None:
    """Resolve an image reference to a vault path.

    Order: exact path, path + each known extension when none was given, then a
    vault-wide search by file name or stem.
    """
    candidates = [reference]
    decoded = unquote(reference)
    if decoded != reference:
        candidates.append(decoded)
    for candidate in candidates:
        path = normalize_path(candidate.strip().strip("<>"))
        if not path:
            continue
        if store.is_file(path) and _is_image_path(path):
            return path
        if not PurePosixPath(path).suffix:
            for ext in IMAGE_EXTENSIONS:
                with_ext = f"{path}.{ext}"
                if store.is_file(with_ext):
                    return with_ext
    wanted = PurePosixPath(normalize_path(decoded.strip().strip("<>"))).name
    if not wanted:
        return None
    for path in store.iter_all_files():
        pure = PurePosixPath(path)
        if (pure.name == wanted or pure.stem == wanted) and _is_image_path(path):
            return path
    return None


@dataclass
class AssetHost:
    """Image hosting repository reached through the contents API."""

    client: GitHubClient
    repo: str  # owner/name
    branch: str = "main"

    def __post_init__(self) -> None:
        parts = self.repo.split("/")
        if len(parts) != 2 or not all(parts):
            raise ConfigurationError(
                f"Invalid image hosting repo {self.repo!r}; expected owner/repo"
            )
        self.branch = self.branch or "main"

    def _contents_path(self, filename: str) -> str:
        return f"repos/{self.repo}/contents/{ASSET_PREFIX}/{filename}"

    def raw_url(self, filename: str) -> str:
        return (
            f"https://{self.client.host}/{self.repo}/blob/{self.branch}/"
            f"{ASSET_PREFIX}/{filename}?raw=true"
        )

    def exists(self, filename: str) -> str | None:
        """Return the existing blob sha, or None when nothing is stored there."""
        status, payload = self.client.rest(
            "GET",
            self._contents_path(filename),
            params={"ref": self.branch},
            allow_status=(HTTP_NOT_FOUND,),
        )
        if status == HTTP_NOT_FOUND:
            return None
        sha = payload.get("sha") if isinstance(payload, dict) else None
        return str(sha) if sha else ""

    def upload(self, filename: str, data: bytes) -> str:
        status, _ = self.client.rest(
            "PUT",
            self._contents_path(filename),
            json_body={
                "message": f"Upload image {filename} ({len(data)} bytes)",
                "content": base64.b64encode(data).decode("ascii"),
                "branch": self.branch,
            },
        )
        if status not in (200, 201):
            raise GitHubAPIError(f"Failed to upload image {filename}: {status}", status=status)
        return self.raw_url(filename)


@dataclass
class ImagePushResult:
    content: str
    uploaded_count: int = 0
    skipped_count: int = 0
    reused_count: int = 0
    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class _ImageUploader:
    def __init__(self, store: LocalStore, host: AssetHost):
        self.store = store
        self.host = host
        self.logger = get_logger()
        self.result = ImagePushResult(content="")
        self._resolved: dict[str, str | None] = {}

    def hosted_url(self, reference: str) -> str | None:
        if reference in self._resolved:
            return self._resolved[reference]
        url = self._publish(reference)
        self._resolved[reference] = url
        return url

    def _publish(self, reference: str) -> str | None:
        path = find_image_file(self.store, reference)
        if path is None:
            self.logger.warning(f"Image not found: {reference}", image=reference)
            return None
        data = self.store.read_bytes(path)
        filename = asset_filename(data, path)
        existing_sha = self.host.exists(filename)
        if existing_sha is not None:
            if existing_sha and existing_sha != git_blob_sha(data):
                self.logger.warning(
                    f"Hosted image {filename} differs from local bytes of {path}; reusing it anyway",
                    image=reference,
                    asset=filename,
                )
            self.logger.debug(f"Image already hosted: {filename}", image=reference)
            self.result.reused_count += 1
            return self.host.raw_url(filename)
        url = self.host.upload(filename, data)
        self.logger.info(f"Uploaded image: {filename} -> {url}", image=reference, asset=filename)
        return url

    def _replacement(self, marker_ref: str, alt: str, reference: str, original: str) -> str:
        url = self.hosted_url(reference)
        if url is None:
            self.result.skipped_count += 1
            self.result.skipped.append(reference)
            return original
        self.result.uploaded_count += 1
        self.result.uploaded.append(reference)
        return f"{MARKER_PREFIX}{marker_ref} -->\n![{alt}]({url})"

    def rewrite(self, content: str) -> ImagePushResult:
        def _embed(m: re.Match[str]) -> str:
            path = m.group(1).strip()
            alt = m.group(2)
            marker_ref = f"{path}|{alt}" if alt is not None else path
            return self._replacement(marker_ref, alt or path, path, m.group(0))

        def _markdown(m: re.Match[str]) -> str:
            target = m.group(2).strip()
            if not is_local_target(target):
                return m.group(0)
            return self._replacement(target, m.group(1), target, m.group(0))

        rewritten = EMBED_IMAGE.sub(_embed, content)
        rewritten = MARKDOWN_IMAGE.sub(_markdown, rewritten)
        self.result.content = rewritten
        return self.result


def push_images(content: str, store: LocalStore, host: AssetHost | None) -> ImagePushResult:
    """Host every local image in ``content``; no-op without a hosting repo."""
    if host is None:
        get_logger().debug("Image hosting repo not configured, skipping image upload")
        return ImagePushResult(content=content)
    return _ImageUploader(store, host).rewrite(content)


__all__ = [
    "AssetHost",
    "ImagePushResult",
    "asset_filename",
    "content_digest",
    "find_image_file",
    "git_blob_sha",
    "has_local_images",
    "is_local_target",
    "push_images",
    "restore_local_images",
]
