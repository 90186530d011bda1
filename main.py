#!/usr/bin/env python3
"""
Track Network Generator
=======================

Deterministic railway network layout over procedurally generated terrain.
Supports command-line generation and a web preview.

Usage:
    python main.py                          # Start web preview
    python main.py --generate               # Generate a region and save
    python main.py --preset <name>          # Use a specific preset
    python main.py --config <file>          # Use custom config file
    python main.py --ascii                  # Print the base network as text
"""

import argparse
import json
import os

from tracknet.core.region_generator import RegionGeneratorFactory
from tracknet.config.settings import TrackWorldConfig, create_default_config, create_preset_config
from tracknet.modules.topology import TopologyGenerator
from tracknet.web.app import create_app


def generate_region(config=None, preset_name=None, output_dir="output",
                    min_x=0, min_z=0, width=16, depth=16):
    """Generate a region with the given configuration"""
    if preset_name:
        config = create_preset_config(preset_name)
    elif config is None:
        config = TrackWorldConfig()

    os.makedirs(output_dir, exist_ok=True)

    generator = RegionGeneratorFactory.create_generator(config)
    region = generator.generate_region(min_x, min_z, width, depth)

    base_name = f"tracks_{config.name.lower().replace(' ', '_')}_{config.seed}"

    json_path = os.path.join(output_dir, f"{base_name}.json")
    with open(json_path, 'w') as f:
        f.write(region.to_json())

    from tracknet.rendering.network_renderer import NetworkRenderer
    renderer = NetworkRenderer()
    png_path = os.path.join(output_dir, f"{base_name}.png")
    renderer.render_region(region, save_path=png_path)

    print(f"Region generated successfully!")
    print(f"  JSON: {json_path}")
    print(f"  PNG:  {png_path}")

    return region


def print_ascii_map(config, min_x, min_z, width, depth):
    """Print the base network decisions as a character map"""
    topology = TopologyGenerator(config.network, config.seed)
    print(topology.render_ascii(min_x, min_z, min_x + width - 1, min_z + depth - 1))


def run_cli():
    """Run the system in CLI mode"""
    parser = argparse.ArgumentParser(description="Track Network Generator")
    parser.add_argument("--generate", action="store_true", help="Generate a region")
    parser.add_argument("--ascii", action="store_true", help="Print the base network as text")
    parser.add_argument("--preset", type=str, help="Use a specific preset")
    parser.add_argument("--config", type=str, help="Custom config file")
    parser.add_argument("--seed", type=int, help="World seed")
    parser.add_argument("--min-x", type=int, default=0, help="West-most cell x")
    parser.add_argument("--min-z", type=int, default=0, help="North-most cell z")
    parser.add_argument("--width", type=int, default=16, help="Cells along x")
    parser.add_argument("--depth", type=int, default=16, help="Cells along z")
    parser.add_argument("--output", type=str, default="output", help="Output directory")
    parser.add_argument("--port", type=int, default=5001, help="Web preview port")

    args = parser.parse_args()

    config = None
    if args.config:
        with open(args.config, 'r') as f:
            config = TrackWorldConfig.from_dict(json.load(f))
    elif args.preset:
        config = create_preset_config(args.preset)
    if config is None:
        config = create_default_config()
    if args.seed is not None:
        config.seed = args.seed

    if args.ascii:
        print_ascii_map(config, args.min_x, args.min_z, args.width, args.depth)
    elif args.generate or args.preset or args.config:
        generate_region(config=config, output_dir=args.output,
                        min_x=args.min_x, min_z=args.min_z, width=args.width, depth=args.depth)
    else:
        run_web(port=args.port)


def run_web(port=5001):
    """Run the web preview"""
    app = create_app()
    app.run(host='0.0.0.0', port=port, debug=True)


if __name__ == "__main__":
    run_cli()
