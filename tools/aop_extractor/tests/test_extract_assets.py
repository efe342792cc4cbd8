"""Tests for the extract_assets CLI."""
import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from extract_assets import detect_kind, main
from synthetic import create_test_an, create_test_gm, create_test_tx

TOOL_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

CLIPS = """\
[walk]
start_time = 0
end_time = 2
loop = 1
event = "step", 1

[broken]
start_time = 0
"""


def write_an(tmp_path):
    path = tmp_path / "hero.an"
    path.write_bytes(create_test_an(
        parents=[-1, 0],
        rest_positions=[(0, 0, 0), (0, 1, 0)],
        root_positions=[(0, 0, 0), (1, 0, 0), (2, 0, 0)],
        rotations=[[(0, 0, 0, 1)] * 3, [(0, 0, 0, 1)] * 3],
        fps=10.0,
    ))
    return path


def write_gm(tmp_path, version="20.1", flags=0):
    path = tmp_path / "hero.gm"
    path.write_bytes(create_test_gm(
        version=version,
        strings=["body", "hull", "hull.tga"],
        textures=["hull.tga"],
        materials=[{"group": "body", "name": "hull", "slots": [(1, 0), (0, 0), (0, 0), (0, 0)]}],
        meshes=[{"group": "body", "name": "hull", "triangle_count": 1, "vertex_count": 3}],
        triangles=[(0, 1, 2)],
        buffers=[{"flags": flags, "vertices": [{"position": (i, 0, 0)} for i in range(3)]}],
    ))
    return path


def test_cli_help():
    """CLI should show help."""
    result = subprocess.run(
        [sys.executable, "extract_assets.py", "--help"],
        capture_output=True,
        text=True,
        cwd=TOOL_DIR,
    )
    assert result.returncode == 0
    assert "usage" in result.stdout.lower()


def test_cli_clips_json(tmp_path):
    """CLI should reconstruct clips and report skipped sections on stderr."""
    an_path = write_an(tmp_path)
    ani_path = tmp_path / "hero.ani"
    ani_path.write_text(CLIPS)

    result = subprocess.run(
        [sys.executable, "extract_assets.py", str(an_path), "--ani", str(ani_path), "--json"],
        capture_output=True,
        text=True,
        cwd=TOOL_DIR,
    )

    assert result.returncode == 0
    info = json.loads(result.stdout)[str(an_path)]
    (clip,) = info["clips"]
    assert clip["name"] == "hero_walk"
    assert clip["loop"] is True
    assert clip["stop_time"] == pytest.approx(0.2)
    assert clip["events"] == [{"time": pytest.approx(0.1), "label": "step"}]
    assert clip["root_position"][2][1] == -2.0
    assert set(clip["bones"]) == {"bone_00", "bone_00/bone_01"}
    assert "broken" in result.stderr


@pytest.mark.parametrize("name,kind", [
    ("a.an", "an"), ("a.GM", "gm"), ("a.tga.tx", "tx"), ("a.ani", "ani"), ("a.txt", None),
])
def test_detect_kind(name, kind):
    """Should pick the decoder from the file name."""
    assert detect_kind(Path(name)) == kind


def test_scene_summary(tmp_path, capsys):
    """Should print a readable summary of a scene."""
    path = write_gm(tmp_path)

    assert main([str(path)]) == 0

    out = capsys.readouterr().out
    assert "Version: 20.1 (current layout)" in out
    assert "Mesh body/hull: 3 vertices, 1 triangles" in out


def test_scene_json(tmp_path, capsys):
    """Should describe materials, meshes and textures as JSON."""
    path = write_gm(tmp_path, version="11.0")

    assert main([str(path), "--json"]) == 0

    info = json.loads(capsys.readouterr().out)[str(path)]
    assert info["layout"] == "legacy"
    assert info["textures"] == ["hull.tga"]
    assert info["materials"][0]["textures"] == [["MAIN", "hull.tga"]]
    assert info["meshes"][0]["vertices"] == 3


def test_skinned_scene_warns(tmp_path, capsys):
    """Should warn when a skinned scene is read without its bones."""
    path = write_gm(tmp_path, flags=4)

    assert main([str(path)]) == 0

    assert "--an" in capsys.readouterr().err


def test_unsupported_version(tmp_path, capsys):
    """Should fail the file and exit non-zero for version 10.1."""
    path = tmp_path / "old.gm"
    path.write_bytes(b"10.1")

    assert main([str(path)]) == 1

    err = capsys.readouterr().err
    assert "Failed:" in err
    assert "10.1" in err


def test_legacy_version_warns(tmp_path, capsys):
    """Should warn when a scene version is read with the legacy layout."""
    path = write_gm(tmp_path, version="11.0")

    assert main([str(path)]) == 0

    assert "legacy layout" in capsys.readouterr().err


def test_bad_file_does_not_stop_others(tmp_path, capsys):
    """Should report a broken file and still decode the next one."""
    bad = tmp_path / "bad.ani"
    bad.write_bytes(b"[walk]\nstart_time = 0\xff\xfe\n")
    good = tmp_path / "good.ani"
    good.write_text(CLIPS)

    assert main([str(bad), str(good)]) == 1

    captured = capsys.readouterr()
    assert f"Failed: {bad}" in captured.err
    assert f"File: {good}" in captured.out
    assert "[walk]" in captured.out


def test_strict_version(tmp_path):
    """Should refuse legacy scenes with --strict-version."""
    path = write_gm(tmp_path, version="11.0")

    assert main([str(path), "--strict-version"]) == 1


def test_texture_png(tmp_path, capsys):
    """Should summarize a texture and write its PNG preview."""
    path = tmp_path / "hull.tga.tx"
    path.write_bytes(create_test_tx(4, 4))
    output = tmp_path / "png"

    assert main([str(path), "--png", str(output)]) == 0

    assert "4x4 DXT1, 1 mips, 8 bytes" in capsys.readouterr().out
    assert (output / "hull.png").exists()


def test_directory_input(tmp_path, capsys):
    """Should decode every known file found under a directory."""
    write_an(tmp_path)
    (tmp_path / "hero.ani").write_text(CLIPS)
    (tmp_path / "notes.txt").write_text("ignored")

    assert main([str(tmp_path), "--json"]) == 0

    info = json.loads(capsys.readouterr().out)
    assert sorted(Path(p).name for p in info) == ["hero.an", "hero.ani"]
    assert info[str(tmp_path / "hero.ani")]["walk"]["event"] == ['"step", 1']


def test_no_files(tmp_path, capsys):
    """Should fail when a directory holds no asset files."""
    assert main([str(tmp_path)]) == 1
    assert "No asset files" in capsys.readouterr().err
