from pathlib import Path
import base64
import binascii
import logging

from .resources import StorageError

logger = logging.getLogger(__name__)

class FileStorage():
    """
    Named storage area on the local filesystem.
    Relative paths land under root (current directory if not given),
    absolute paths are written where they point.
    """

    def __init__(self, namespace: str = "gsheet", root: Path|str|None = None) -> None:
        self.namespace = namespace
        self.root = Path(root) if root is not None else None

    def __str__(self) -> str:
        return f"{self.namespace}:{self.root or '.'}"

    def resolve(self, path: Path|str) -> Path:
        p = Path(path)
        if self.root is not None and not p.is_absolute():
            p = self.root / p
        return p

    def save(self, path: Path|str, dataBase64: str) -> Path:
        """
        Decode dataBase64 and write the bytes to path, creating parent directories.
        Returns the path written.
        """
        try:
            data = base64.b64decode(dataBase64, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise StorageError(f"invalid base64 data for {path}: {e}") from e
        try:
            target = self.resolve(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except (OSError, ValueError, TypeError) as e:
            raise StorageError(f"could not write {path}: {e}") from e
        logger.info(f"[{self.namespace}] saved {len(data)} bytes to {target}")
        return target
