#!/usr/bin/env python3
"""
rigexport - Main Entry Point

Builds a bind-pose skeleton from a scene description, extracts per-frame
bone motion against it and writes the hierarchy and animation records.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from rigexport.core import Config, setup_logging, get_logger, log_stage, ExportError
from rigexport.export import RecordExporter
from rigexport.motion import HierarchyBuilder, MotionExtractor
from rigexport.scene import load_scene


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Export a skeleton and its animation from a scene description"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--scene", "-s",
        type=str,
        required=True,
        help="Scene description (YAML)"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output directory (overrides config)"
    )
    parser.add_argument(
        "--start",
        type=int,
        help="First frame (overrides config)"
    )
    parser.add_argument(
        "--end",
        type=int,
        help="Last frame (overrides config)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    return parser.parse_args()


def main() -> int:
    """Main application entry point."""
    args = parse_args()

    config_path = Path(args.config)
    if not config_path.is_absolute():
        config_path = Path(__file__).parent / config_path

    try:
        config = Config(str(config_path))
    except FileNotFoundError:
        print(f"Error: Config file not found: {config_path}")
        return 1

    log_level = "DEBUG" if args.debug else config.get("app.log_level", "INFO")
    setup_logging(
        level=log_level,
        log_file=config.get("app.log_file", "rigexport"),
        log_dir=config.get("app.log_dir", "logs"),
    )
    logger = get_logger("main")

    logger.info("=" * 50)
    logger.info(f"rigexport v{config.get('app.version', '0.1.0')}")
    logger.info("=" * 50)

    if args.output:
        config.set("export.output_dir", args.output)
        logger.info(f"Output override: {args.output}")
    if args.start is not None:
        config.set("motion.start_frame", args.start)
    if args.end is not None:
        config.set("motion.end_frame", args.end)

    return run_export(config, args.scene)


def run_export(config: Config, scene_path: str) -> int:
    """Run the bind pose, extraction and export stages."""
    logger = get_logger("main")

    try:
        scene = load_scene(scene_path)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load scene {scene_path}: {e}")
        return 1

    start_frame = config.get("motion.start_frame", 0)
    end_frame = config.get("motion.end_frame", 0)
    hierarchy_name = config.get("export.hierarchy_name", "skeleton")
    animation_name = config.get("export.animation_name", "animation")

    builder = HierarchyBuilder(config)
    extractor = MotionExtractor(config, builder=builder)
    exporter = RecordExporter(config)

    try:
        with log_stage(logger, "Bind pose"):
            bind_pose = builder.build(
                scene.roots,
                scene.frame_time(start_frame),
                name=hierarchy_name,
            )
        with log_stage(logger, "Extraction"):
            channels = extractor.extract(
                scene,
                bind_pose,
                start_frame=start_frame,
                end_frame=end_frame,
                name=animation_name,
            )
        with log_stage(logger, "Export"):
            exporter.export_hierarchy(bind_pose, hierarchy_name)
            exporter.export_animation(channels, animation_name)
    except (ExportError, ValueError, OSError):
        # log_stage has already reported the failure
        return 1

    logger.info("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
