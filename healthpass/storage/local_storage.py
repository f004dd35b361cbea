"""
Local Filesystem Storage Implementation.
This implementation stores all data on the server's local filesystem.
"""

import json
import logging
import aiofiles
from pathlib import Path
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
import glob as glob_module
from .interface import StorageInterface

logger = logging.getLogger(__name__)


class LocalStorage(StorageInterface):
    """
    Local filesystem storage implementation.
    Stores all data in a base directory on the server.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, path: str) -> Path:
        """Convert relative path to full absolute path within base directory."""
        full_path = (self.base_dir / path).resolve()

        # Security check: ensure path is within base_dir
        if full_path != self.base_dir and self.base_dir not in full_path.parents:
            raise ValueError(f"Invalid path: {path} - path traversal detected")

        return full_path

    async def save(
        self,
        path: str,
        content: bytes | str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Save content to local filesystem."""
        try:
            full_path = self._get_full_path(path)
            full_path.parent.mkdir(parents=True, exist_ok=True)

            # Write to a sibling temp file and rename so readers never see partial JSON
            tmp_path = full_path.with_name(full_path.name + ".tmp")
            if isinstance(content, str):
                async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                    await f.write(content)
            else:
                async with aiofiles.open(tmp_path, 'wb') as f:
                    await f.write(content)
            tmp_path.replace(full_path)

            if metadata:
                metadata_path = full_path.with_suffix(full_path.suffix + '.meta')
                async with aiofiles.open(metadata_path, 'w', encoding='utf-8') as f:
                    await f.write(json.dumps(metadata, indent=2, default=str))

            return True
        except Exception as e:
            logger.error(f"Error saving file {path}: {e}", exc_info=True)
            return False

    async def load(self, path: str) -> Optional[bytes]:
        """Load content from local filesystem."""
        try:
            full_path = self._get_full_path(path)
            if not full_path.exists():
                return None

            async with aiofiles.open(full_path, 'rb') as f:
                content = await f.read()

            return content
        except Exception as e:
            logger.error(f"Error loading file {path}: {e}", exc_info=True)
            return None

    async def exists(self, path: str) -> bool:
        """Check if file exists."""
        try:
            full_path = self._get_full_path(path)
            return full_path.exists()
        except ValueError:
            return False

    async def delete(self, path: str) -> bool:
        """Delete file from local filesystem."""
        try:
            full_path = self._get_full_path(path)
            if full_path.exists():
                full_path.unlink()

                # Also delete metadata file if exists
                metadata_path = full_path.with_suffix(full_path.suffix + '.meta')
                if metadata_path.exists():
                    metadata_path.unlink()

                return True
            return False
        except Exception as e:
            logger.error(f"Error deleting file {path}: {e}", exc_info=True)
            return False

    async def list(
        self,
        path: str,
        pattern: Optional[str] = None,
        recursive: bool = False
    ) -> List[str]:
        """List files in directory."""
        try:
            full_path = self._get_full_path(path)
            if not full_path.exists():
                return []

            if pattern:
                if recursive:
                    glob_pattern = str(full_path / "**" / pattern)
                    files = glob_module.glob(glob_pattern, recursive=True)
                else:
                    glob_pattern = str(full_path / pattern)
                    files = glob_module.glob(glob_pattern)
            else:
                if recursive:
                    files = [str(p) for p in full_path.rglob("*") if p.is_file()]
                else:
                    files = [str(p) for p in full_path.glob("*") if p.is_file()]

            relative_paths = []
            for file_path in files:
                # Skip metadata and in-flight temp files
                if file_path.endswith('.meta') or file_path.endswith('.tmp'):
                    continue
                rel_path = Path(file_path).relative_to(self.base_dir).as_posix()
                relative_paths.append(rel_path)

            return sorted(relative_paths)
        except Exception as e:
            logger.error(f"Error listing files in {path}: {e}", exc_info=True)
            return []

    async def get_metadata(self, path: str) -> Optional[Dict[str, Any]]:
        """Get file metadata."""
        try:
            full_path = self._get_full_path(path)
            if not full_path.exists():
                return None

            stat = full_path.stat()
            metadata = {
                'size': stat.st_size,
                'modified_at': datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
                'path': path
            }

            # Load custom metadata if exists
            metadata_path = full_path.with_suffix(full_path.suffix + '.meta')
            if metadata_path.exists():
                async with aiofiles.open(metadata_path, 'r', encoding='utf-8') as f:
                    custom_meta = json.loads(await f.read())
                    metadata.update(custom_meta)

            return metadata
        except Exception as e:
            logger.error(f"Error getting metadata for {path}: {e}", exc_info=True)
            return None
