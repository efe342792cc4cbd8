#!/usr/bin/env python3
"""Decode AoP asset files and print what they contain.

Usage:
    python extract_assets.py <file>... [--ani <clips.ani>] [--an <skeleton.an>]
                             [--json] [--png <dir>] [--flip-uv] [--strict-version]

Examples:
    # Summarize a scene
    python extract_assets.py hero.gm

    # Reconstruct the clips described by an .ani file
    python extract_assets.py hero.an --ani hero.ani --json

    # Convert a texture to PNG
    python extract_assets.py hero.tga.tx --png ./output
"""
import argparse
import json
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from an_file import AnimationFile, load_an
from ani_file import ClipDescription, load_ani
from animation_builder import ReconstructionResult, reconstruct_clips
from geometry import build_scene_geometry, scene_locators
from gm_file import SceneFile, load_gm, material_textures
from rig import rest_pose
from tx_file import CompressedTexture, declared_size_matches_dimensions, load_tx, mip_levels

KIND_ANIMATION = "an"
KIND_SCENE = "gm"
KIND_TEXTURE = "tx"
KIND_CLIPS = "ani"


def detect_kind(path: Path) -> Optional[str]:
    name = path.name.lower()
    if name.endswith(".tx"):
        return KIND_TEXTURE
    return {".an": KIND_ANIMATION, ".gm": KIND_SCENE, ".ani": KIND_CLIPS}.get(path.suffix.lower())


def describe_animation(animation: AnimationFile, result: Optional[ReconstructionResult]) -> Dict:
    header = animation.header
    info = {
        "frames": header.frame_count,
        "bones": header.bone_count,
        "fps": header.frames_per_second,
        "root_bones": animation.skeleton.root_bones,
        "rest_pose": [
            {
                "name": pose.name,
                "parent": pose.parent,
                "position": list(pose.local_position),
                "rotation": list(pose.local_rotation),
            }
            for pose in rest_pose(animation)
        ],
    }
    if result is not None:
        info["clips"] = [
            {
                "name": clip.name,
                "frame_rate": clip.frame_rate,
                "start_frame": clip.start_frame,
                "end_frame": clip.end_frame,
                "stop_time": clip.stop_time,
                "loop": clip.loop,
                "events": [{"time": e.time, "label": e.label} for e in clip.events],
                "root_position": [list(s) for s in clip.root_position_samples],
                "bones": {c.path: [list(s) for s in c.samples] for c in clip.bone_curves},
            }
            for clip in result.clips
        ]
    return info


def describe_scene(scene: SceneFile, flip_uv: bool) -> Dict:
    header = scene.header
    return {
        "version": header.version,
        "layout": scene.layout.name,
        "bounds_size": list(header.bounds_size),
        "bounds_center": list(header.bounds_center),
        "radius": header.radius,
        "textures": scene.texture_names(),
        "materials": [
            {
                "group": m.group_name,
                "name": m.name,
                "diffuse": m.diffuse,
                "specular": m.specular,
                "gloss": m.gloss,
                "self_illum": m.self_illum,
                "textures": [[t.name, n] for t, n in material_textures(scene, m)],
            }
            for m in scene.materials
        ],
        "meshes": [
            {
                "group": g.group_name,
                "name": g.name,
                "material": g.material_index,
                "vertices": g.vertex_count,
                "triangles": g.triangle_count,
                "skinned": g.is_skinned,
                "uv2": g.uv2 is not None,
            }
            for g in build_scene_geometry(scene, flip_uv_vertical=flip_uv)
        ],
        "locators": [
            {
                "group": l.group_name,
                "name": l.name,
                "position": list(l.position),
                "rotation": list(l.rotation),
                "bone": l.bone,
            }
            for l in scene_locators(scene)
        ],
    }


def describe_texture(texture: CompressedTexture) -> Dict:
    header = texture.header
    return {
        "width": header.width,
        "height": header.height,
        "four_cc": header.four_cc,
        "mip_count": header.mip_count,
        "base_mip_size": header.base_mip_byte_size,
        "payload_size": len(texture.mip_chain),
        "size_matches_dimensions": declared_size_matches_dimensions(header),
        "mips": [[m.width, m.height, len(m.data)] for m in mip_levels(texture)],
    }


def describe_clips(description: ClipDescription) -> Dict:
    return {s.name: {k: list(v) for k, v in s.entries.items()} for s in description.sections}


def print_summary(path: Path, kind: str, info: Dict):
    print(f"File: {path}")
    if kind == KIND_ANIMATION:
        print(f"  Frames: {info['frames']} @ {info['fps']:g} fps")
        print(f"  Bones: {info['bones']} (roots: {info['root_bones']})")
        for clip in info.get("clips", []):
            loop = " loop" if clip["loop"] else ""
            print(f"  Clip {clip['name']}: frames {clip['start_frame']}..{clip['end_frame']}, "
                  f"{clip['stop_time']:.3f}s{loop}, {len(clip['events'])} events")
    elif kind == KIND_SCENE:
        print(f"  Version: {info['version']} ({info['layout']} layout)")
        print(f"  Textures: {len(info['textures'])}, materials: {len(info['materials'])}, "
              f"locators: {len(info['locators'])}")
        for mesh in info["meshes"]:
            skinned = " skinned" if mesh["skinned"] else ""
            print(f"  Mesh {mesh['group']}/{mesh['name']}: {mesh['vertices']} vertices, "
                  f"{mesh['triangles']} triangles{skinned}")
    elif kind == KIND_TEXTURE:
        print(f"  {info['width']}x{info['height']} {info['four_cc']}, {info['mip_count']} mips, "
              f"{info['payload_size']} bytes")
    elif kind == KIND_CLIPS:
        for name, entries in info.items():
            print(f"  [{name}] {', '.join(entries)}")


def process_file(path: Path, kind: str, args) -> Dict:
    """Decode one file and return its description.

    Non-fatal problems are printed to stderr.
    """
    if kind == KIND_ANIMATION:
        animation = load_an(path)
        result = None
        if args.ani:
            result = reconstruct_clips(animation, load_ani(args.ani), clip_name_prefix=f"{path.stem}_")
            for problem in result.diagnostics:
                print(f"Warning: {path}: {problem}", file=sys.stderr)
        return describe_animation(animation, result)

    if kind == KIND_SCENE:
        scene = load_gm(path, strict_version=args.strict_version)
        for problem in scene.diagnostics:
            print(f"Warning: {path}: {problem}", file=sys.stderr)
        if scene.has_skinned_meshes and not args.an:
            print(f"Warning: {path}: scene has skinned meshes, but bones not loaded (use --an)",
                  file=sys.stderr)
        info = describe_scene(scene, args.flip_uv)
        if args.an:
            info["bones"] = load_an(args.an).header.bone_count
        return info

    if kind == KIND_TEXTURE:
        texture = load_tx(path)
        if args.png:
            from tx_image import save_png

            os.makedirs(args.png, exist_ok=True)
            output = Path(args.png) / f"{path.name.split('.')[0]}.png"
            save_png(texture, str(output), flip_vertically=args.flip_uv)
            if args.verbose:
                print(f"Exported: {path} -> {output}")
        return describe_texture(texture)

    return describe_clips(load_ani(path))


def collect_files(inputs: List[str]) -> List[Path]:
    files = []
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            files.extend(p for p in sorted(path.rglob("*")) if p.is_file() and detect_kind(p))
        else:
            files.append(path)
    return files


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Decode AoP .an, .gm, .tga.tx and .ani asset files"
    )
    parser.add_argument("inputs", nargs="+", help="Asset files or directories")
    parser.add_argument("--ani", help="Clip description used to reconstruct clips of .an files")
    parser.add_argument("--an", help="Skeleton animation to pair with .gm scenes")
    parser.add_argument("--json", "-j", action="store_true", help="Print decoded data as JSON")
    parser.add_argument("--png", help="Directory for PNG previews of textures")
    parser.add_argument("--flip-uv", action="store_true",
                        help="Flip UVs (and texture previews) vertically")
    parser.add_argument("--strict-version", action="store_true",
                        help="Refuse .gm versions other than 20.1")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    files = collect_files(args.inputs)
    if not files:
        print("No asset files found", file=sys.stderr)
        return 1

    results = {}
    fail_count = 0
    for path in files:
        kind = detect_kind(path)
        if kind is None:
            print(f"Failed: {path} - unknown file type", file=sys.stderr)
            fail_count += 1
            continue
        try:
            info = process_file(path, kind, args)
        except Exception as e:
            print(f"Failed: {path} - {e}", file=sys.stderr)
            fail_count += 1
            continue

        if args.json:
            results[str(path)] = info
        else:
            print_summary(path, kind, info)

    if args.json:
        print(json.dumps(results, indent=2))
    if args.verbose:
        print(f"\nDecoded {len(files) - fail_count}/{len(files)} files", file=sys.stderr)

    return 0 if fail_count == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
