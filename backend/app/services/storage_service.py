"""Object storage: named buckets under a local filesystem root.

Objects are addressed as ``(bucket, path)``; public URLs are
``{STORAGE_PUBLIC_URL}/{bucket}/{path}``. Blocking file I/O runs in a worker
thread so request handlers never block the event loop.
"""
import asyncio
import logging
import shutil
from pathlib import Path, PurePosixPath

from app.config import settings
from app.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class ObjectStorage:
    def __init__(self, root: str | Path, public_url: str) -> None:
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        clean = PurePosixPath(path)
        if clean.is_absolute() or ".." in clean.parts or not clean.parts:
            raise ValidationError(f"Invalid object path: {path}")
        if "/" in bucket or bucket in ("", ".", ".."):
            raise ValidationError(f"Invalid bucket: {bucket}")
        return self.root / bucket / Path(*clean.parts)

    async def upload(self, bucket: str, path: str, data: bytes, *, upsert: bool = False) -> str:
        target = self._resolve(bucket, path)

        def _write() -> None:
            if target.exists() and not upsert:
                raise ConflictError(f"Object already exists: {bucket}/{path}")
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(target.name + ".part")
            tmp.write_bytes(data)
            tmp.replace(target)

        await asyncio.to_thread(_write)
        logger.debug("Stored %d bytes at %s/%s", len(data), bucket, path)
        return path

    async def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)

        def _read() -> bytes:
            if not target.is_file():
                raise NotFoundError(f"Object not found: {bucket}/{path}")
            return target.read_bytes()

        return await asyncio.to_thread(_read)

    async def remove(self, bucket: str, paths: list[str]) -> int:
        """Delete objects; missing ones are skipped. Returns how many were removed."""
        targets = [self._resolve(bucket, p) for p in paths]

        def _unlink() -> int:
            removed = 0
            for target in targets:
                if target.is_file():
                    target.unlink()
                    removed += 1
            return removed

        return await asyncio.to_thread(_unlink)

    async def list_objects(self, bucket: str, prefix: str = "") -> list[str]:
        base = self.root / bucket

        def _walk() -> list[str]:
            if not base.is_dir():
                return []
            names = [
                p.relative_to(base).as_posix()
                for p in base.rglob("*")
                if p.is_file() and not p.name.endswith(".part")
            ]
            return sorted(n for n in names if n.startswith(prefix))

        return await asyncio.to_thread(_walk)

    async def remove_bucket(self, bucket: str) -> None:
        await asyncio.to_thread(shutil.rmtree, self.root / bucket, True)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_url}/{bucket}/{PurePosixPath(path).as_posix()}"

    def path_from_public_url(self, bucket: str, url: str) -> str | None:
        prefix = f"{self.public_url}/{bucket}/"
        return url[len(prefix):] if url.startswith(prefix) else None


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    global _storage
    if _storage is None:
        _storage = ObjectStorage(settings.STORAGE_ROOT, settings.STORAGE_PUBLIC_URL)
    return _storage
