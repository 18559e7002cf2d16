"""Tests for the command-line interface."""

from __future__ import annotations

import pytest
import yaml
from click.testing import CliRunner

from fractal_explorer.cli.main import main, parse_complex
from fractal_explorer.io.config import load_settings


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "settings.yml"
    path.write_text(yaml.safe_dump({
        'fractal_folder': str(tmp_path / "fractals"),
        'palette_folder': str(tmp_path / "palettes"),
        'init_rows': 20,
        'init_cols': 30,
        'init_pixel_pitch': 0.1,
        'init_max_iterations': 25,
        'num_workers': 2,
    }))
    return path


@pytest.fixture
def runner():
    return CliRunner()


def test_generate_writes_image(runner, config_file, tmp_path):
    result = runner.invoke(main, ['--config', str(config_file), 'generate', '--histogram'])
    assert result.exit_code == 0, result.output
    assert "Generated fractal-001.png" in result.output
    assert '"bins"' in result.output
    assert (tmp_path / "fractals" / "fractal-001.png").is_file()


def test_generate_recenter_and_rerender(runner, config_file, tmp_path, palette_bytes):
    palette_path = tmp_path / "two-stop.palette"
    palette_path.write_bytes(palette_bytes)
    result = runner.invoke(main, ['--config', str(config_file), 'generate', '--rows', '10',
                                  '--recenter=-0.75,0.1', '--rerender', str(palette_path)])
    assert result.exit_code == 0, result.output
    assert "Recentred" in result.output
    assert "Re-rendered with two-stop.palette" in result.output
    assert sorted(p.name for p in (tmp_path / "fractals").iterdir()) == \
        ["fractal-001.png", "fractal-002.png", "fractal-003.png"]


def test_generate_rejects_non_positive_sizes(runner, config_file):
    result = runner.invoke(main, ['--config', str(config_file), 'generate', '--rows', '0'])
    assert result.exit_code == 1


def test_generate_reports_missing_palette(runner, config_file):
    result = runner.invoke(main, ['--config', str(config_file), 'generate',
                                  '--palette', 'missing.palette'])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_load_palette_command(runner, config_file, tmp_path, palette_bytes):
    palette_path = tmp_path / "upload.palette"
    palette_path.write_bytes(palette_bytes)
    result = runner.invoke(main, ['--config', str(config_file), 'load-palette', str(palette_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "palettes" / "upload.palette").read_bytes() == palette_bytes


def test_load_palette_rejects_bad_file(runner, config_file, tmp_path):
    palette_path = tmp_path / "bad.palette"
    palette_path.write_text("palette: nope\n")
    result = runner.invoke(main, ['--config', str(config_file), 'load-palette', str(palette_path)])
    assert result.exit_code == 1
    assert not (tmp_path / "palettes" / "bad.palette").exists()


def test_list_palettes(runner, config_file):
    result = runner.invoke(main, ['--config', str(config_file), 'list-palettes'])
    assert result.exit_code == 0
    assert "rainbow" in result.output
    assert "Palette files in" in result.output


def test_export_palette(runner, config_file, tmp_path):
    output = tmp_path / "ocean.gpl"
    result = runner.invoke(main, ['--config', str(config_file), 'export-palette', 'ocean',
                                  '-o', str(output)])
    assert result.exit_code == 0
    assert output.read_text().startswith("GIMP Palette")


def test_init_config_round_trip(runner, config_file, tmp_path):
    output = tmp_path / "copy.yml"
    result = runner.invoke(main, ['--config', str(config_file), 'init-config', '-o', str(output)])
    assert result.exit_code == 0
    assert load_settings(output, env={}) == load_settings(config_file, env={})


def test_bad_config_exits(runner, tmp_path):
    path = tmp_path / "settings.yml"
    path.write_text("unknown_key: 1\n")
    result = runner.invoke(main, ['--config', str(path), 'list-palettes'])
    assert result.exit_code == 1


def test_version(runner):
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert "Fractal Explorer v" in result.output


def test_parse_complex():
    assert parse_complex("-0.5, 0.25") == complex(-0.5, 0.25)
