"""Record Exporter - skeleton and channel records as JSON"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple, Union

from ..core import get_logger, Config
from ..core.skeleton import Skeleton
from ..motion.channels import ChannelSet


class RecordExporter:
    """
    Write logical hierarchy and animation records to disk.

    Only non-empty channels are written; binary layout and compression
    are left to downstream tools reading these records.
    """

    def __init__(self, config: Optional[Config] = None, output_dir: Optional[Union[str, Path]] = None):
        self.logger = get_logger("export.records")
        self.config = config or Config()

        export_config = self.config.export

        self._output_dir = Path(output_dir or export_config.get("output_dir", "./output"))
        self._hierarchy_name = export_config.get("hierarchy_name", "skeleton")
        self._animation_name = export_config.get("animation_name", "animation")
        self._indent = export_config.get("indent", 2)

        self._output_dir.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"Initialized record exporter (output={self._output_dir})")

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def _write(self, data: dict, path: Path) -> None:
        data = {"exported_at": datetime.now().isoformat(timespec="seconds"), **data}
        with open(path, "w") as f:
            json.dump(data, f, indent=self._indent)

    def export_hierarchy(self, skeleton: Skeleton, filename: Optional[str] = None) -> Path:
        """Write pivot records of a skeleton to ``<filename>.hierarchy.json``."""
        filename = filename or skeleton.name or self._hierarchy_name
        path = self._output_dir / f"{filename}.hierarchy.json"

        self._write(skeleton.to_dict(), path)

        self.logger.info(f"Exported hierarchy to {path}")
        self.logger.info(f"  Pivots: {skeleton.num_nodes}")
        return path

    def export_animation(self, channels: ChannelSet, filename: Optional[str] = None) -> Path:
        """Write the header and non-empty channel records to ``<filename>.animation.json``."""
        if channels.num_frames <= 0:
            raise ValueError("No frames to export")

        filename = filename or channels.header.name or self._animation_name
        path = self._output_dir / f"{filename}.animation.json"

        self._write(channels.to_dict(include_empty=False), path)

        written = len(channels.non_empty_channels())
        self.logger.info(f"Exported animation to {path}")
        self.logger.info(f"  Frames: {channels.num_frames}, Bones: {len(channels)}, Channels: {written}")
        return path

    def export(
        self,
        skeleton: Skeleton,
        channels: ChannelSet,
        filename: Optional[str] = None
    ) -> Tuple[Path, Path]:
        """Export both the hierarchy and the animation records."""
        hierarchy_path = self.export_hierarchy(skeleton, filename)
        animation_path = self.export_animation(channels, filename)
        return hierarchy_path, animation_path


def load_hierarchy(path: Union[str, Path]) -> Skeleton:
    """Read a skeleton back from a hierarchy record file, e.g. to reuse it as a fixup tree."""
    with open(path, "r") as f:
        data = json.load(f)
    return Skeleton.from_dict(data)
