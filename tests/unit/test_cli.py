"""Tests for the command-line interface."""

import json
import logging

import pytest
from PIL import Image

from visual_composer.cli import fit_seconds_per_image, main, parse_arguments


@pytest.fixture(autouse=True)
def restore_logging():
    """main() reconfigures the root logger onto the captured stdout."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def images(tmp_path):
    """Two small images on disk."""
    paths = []
    for name, color in (("one.png", (255, 0, 0)), ("two.png", (0, 0, 255))):
        path = tmp_path / name
        Image.new("RGB", (32, 18), color).save(path)
        paths.append(str(path))
    return paths


class TestArguments:
    """Test argument parsing."""

    def test_defaults(self, images):
        args = parse_arguments(images + ["--audio-duration", "10"])

        assert args.images == images
        assert args.audio_duration == 10.0
        assert args.seconds_per_image is None
        assert args.transition == "fade"
        assert args.filter == "none"
        assert args.format == "mp4"
        assert args.quality == "1080p"

    def test_names_are_normalized(self, images):
        args = parse_arguments(images + ["-a", "5", "-t", "slide-left", "--filter", "hue-rotate"])

        assert args.transition == "slide_left"
        assert args.filter == "hue_rotate"

    def test_audio_duration_required(self, images):
        with pytest.raises(SystemExit):
            parse_arguments(images)

    def test_fit_seconds_per_image(self):
        """Test three images with 0.5s overlaps fill an 8 second track."""
        assert fit_seconds_per_image(3, 8.0, 0.5) == pytest.approx(3.0)
        assert fit_seconds_per_image(4, 10.0, 0.0) == pytest.approx(2.5)


class TestMain:
    """Test end-to-end command runs."""

    def test_exports_png_sequence(self, images, tmp_path, capsys):
        output = tmp_path / "exports"
        code = main(images + [
            "--audio-duration", "2", "-q", "480p", "--fps", "2",
            "-o", str(output), "-n", "demo",
        ])

        assert code == 0
        manifest = json.loads((output / "demo" / "manifest.json").read_text())
        assert len(manifest["frames"]) == 4
        assert manifest["duration"] == 2.0
        assert "Progress: 100.0%" in capsys.readouterr().out

    def test_gap_fails_without_fill(self, images, tmp_path, capsys):
        output = tmp_path / "exports"
        code = main(images + [
            "--audio-duration", "5", "-s", "1", "-q", "480p", "--fps", "2",
            "-o", str(output), "-n", "gapped",
        ])

        assert code == 1
        assert "uncovered intervals" in capsys.readouterr().out
        assert not (output / "gapped").exists()

    def test_fill_gaps(self, images, tmp_path):
        output = tmp_path / "exports"
        code = main(images + [
            "--audio-duration", "3", "-s", "1", "-t", "none", "-q", "480p", "--fps", "2",
            "--fill-gaps", "-o", str(output), "-n", "filled",
        ])

        assert code == 0
        manifest = json.loads((output / "filled" / "manifest.json").read_text())
        assert len(manifest["frames"]) == 6

    def test_no_readable_images(self, tmp_path, capsys):
        bogus = tmp_path / "bogus.png"
        bogus.write_text("nope")

        code = main([str(bogus), "--audio-duration", "3"])

        assert code == 1
        assert "No readable images" in capsys.readouterr().out
