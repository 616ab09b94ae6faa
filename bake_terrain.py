# bake_terrain.py

"""
================================================================================
OFFLINE TERRAIN BAKER SCRIPT
================================================================================
This script is a command-line tool for generating a terrain and saving it to
a directory ("baking"): a greyscale heightmap PNG, the mesh as OBJ and as a
raw NumPy archive, and the generation_config.json needed to reproduce it.

Usage:
    python bake_terrain.py --config path/to/your/config.json
================================================================================
"""
import argparse
import json
import logging
import os
import sys
import time

from tqdm import tqdm

from terrain_generator import InvalidConfigurationError, TerrainGenerator
from terrain_generator import config as DEFAULTS
from terrain_generator import exporters

CONFIG_SECTION = 'terrain_generation_parameters'

def load_config(config_path: str) -> dict:
    """Reads the generation parameters from a JSON configuration file."""
    with open(config_path, 'r') as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ValueError(f"top level of {config_path} must be a JSON object, got {type(config).__name__}")
    params = config.get(CONFIG_SECTION, {})
    if not isinstance(params, dict):
        raise ValueError(f"'{CONFIG_SECTION}' must be a JSON object, got {type(params).__name__}")
    return params

def bake_terrain(
    params: dict,
    logger: logging.Logger,
    output_dir: str = None,
    incremental: bool = False,
) -> str:
    """
    Generates the terrain described by `params` and writes all outputs.

    Returns:
        str: The path to the created output directory.
    """
    start_time = time.perf_counter()

    generator = TerrainGenerator(config=params, logger=logger)
    if output_dir is None:
        output_dir = os.path.join(DEFAULTS.DEFAULT_OUTPUT_DIR, f"seed_{generator.seed}")
    os.makedirs(output_dir, exist_ok=True)
    logger.info(f"Output directory set to '{output_dir}'")

    # 1. --- Mesh ---
    if incremental:
        build = generator.iter_mesh_rows()
        for _ in tqdm(build, total=build.total_rows, desc="Building Rows"):
            pass
        mesh = build.result()
    else:
        mesh = generator.build_mesh()

    # 2. --- Heightmap (same field, same sampling) ---
    luminance = generator.generate_heightmap()

    # 3. --- Save ---
    exporters.save_heightmap_png(luminance, os.path.join(output_dir, DEFAULTS.HEIGHTMAP_FILENAME), logger)
    exporters.save_mesh_obj(mesh, os.path.join(output_dir, DEFAULTS.MESH_OBJ_FILENAME), logger)
    exporters.save_mesh_npz(mesh, os.path.join(output_dir, DEFAULTS.MESH_NPZ_FILENAME), logger)
    exporters.save_generation_config(
        generator.settings, os.path.join(output_dir, DEFAULTS.GENERATION_CONFIG_FILENAME), logger
    )

    logger.info(f"Baking complete! Total time: {time.perf_counter() - start_time:.2f} seconds.")
    return output_dir

def _seed_arg(value: str):
    if value == DEFAULTS.RANDOM_SEED:
        return value
    try:
        return int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"seed must be an integer or '{DEFAULTS.RANDOM_SEED}', got {value!r}")

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Offline Terrain Baker for the procedural heightfield generator.")
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the JSON configuration file for the terrain to be baked."
    )
    parser.add_argument("--output", type=str, default=None, help="Output directory (default: baked_terrains/seed_<seed>).")
    parser.add_argument("--seed", type=_seed_arg, default=None, help="Override the seed; 'random' draws a new one.")
    parser.add_argument("--workers", type=int, default=None, help="Threads for the mesh build.")
    parser.add_argument("--incremental", action="store_true", help="Build the mesh row by row with a progress bar.")
    args = parser.parse_args(argv)

    # 1. --- Setup Logging ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    logger = logging.getLogger("TerrainBaker")

    # 2. --- Load Configuration ---
    logger.info(f"Loading configuration from: {args.config}")
    try:
        params = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Failed to load or parse config file: {e}")
        return 1

    if args.seed is not None:
        params['seed'] = args.seed
    if args.workers is not None:
        params['mesh_workers'] = args.workers

    # 3. --- Bake ---
    try:
        bake_terrain(params, logger, output_dir=args.output, incremental=args.incremental)
    except InvalidConfigurationError as e:
        logger.critical(f"Invalid terrain configuration: {e}")
        return 2
    return 0

# --- Command-Line Interface ---
if __name__ == "__main__":
    sys.exit(main())
