"""
Duct component asset library.

Resolves the files the engines place or relink:

- replacement assets by base name (``Unit.ai``) under the primary folder,
- alternate variants next to an existing file (``Unit Emory.ai``),
- register assets per register layer, alternate folder first.
"""

from pathlib import Path
from typing import List, Optional, Union
import logging

from .config import Config, DEFAULT_CONFIG
from .errors import AssetNotFound, InvalidInput

logger = logging.getLogger("ductwork.assets")

PathLike = Union[str, Path]


class AssetLibrary:
    """Asset folders plus the naming rules for alternate variants."""

    def __init__(
        self,
        root: Optional[PathLike] = None,
        alternate_root: Optional[PathLike] = None,
        config: Config = DEFAULT_CONFIG,
    ):
        self.root = Path(root) if root is not None else None
        self.alternate_root = Path(alternate_root) if alternate_root is not None else None
        self.config = config

    def __repr__(self) -> str:
        return f"AssetLibrary(root={self.root}, alternate_root={self.alternate_root})"

    def resolve(self, file_base_name: str) -> Path:
        """Path of a replacement asset. Existence is checked by the caller."""
        if not file_base_name or Path(file_base_name).name != file_base_name:
            raise InvalidInput(f"Invalid asset file name: {file_base_name!r}")
        if self.root is None:
            raise AssetNotFound(file_base_name)
        return self.root / file_base_name

    # -------------------------------------------------------------------------
    # Alternate variants
    # -------------------------------------------------------------------------

    def is_alternate(self, path: PathLike) -> bool:
        suffix = self.config.alternate_suffix
        return bool(suffix) and suffix in Path(path).stem

    def alternate_path(self, path: PathLike) -> Path:
        """Derived sibling path: ``<stem><suffix><ext>`` in the same folder."""
        path = Path(path)
        return path.with_name(f"{path.stem}{self.config.alternate_suffix}{path.suffix}")

    def alternate_of(self, path: PathLike) -> Optional[Path]:
        """Existing alternate variant of ``path``, or None."""
        if self.is_alternate(path):
            return None
        candidate = self.alternate_path(path)
        if candidate.is_file():
            return candidate
        return None

    # -------------------------------------------------------------------------
    # Register assets
    # -------------------------------------------------------------------------

    def register_candidates(self, asset_name: str) -> List[Path]:
        file_name = f"{asset_name}{self.config.alternate_suffix}{self.config.asset_extension}"
        folders = [f for f in (self.alternate_root, self.root) if f is not None]
        return [folder / file_name for folder in folders]

    def register_asset(self, asset_name: str) -> Path:
        candidates = self.register_candidates(asset_name)
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        missing = candidates[0] if candidates else asset_name
        logger.warning(f"Could not find register asset: {missing}")
        raise AssetNotFound(missing)
