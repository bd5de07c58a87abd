import argparse
import logging

import pytest
from PIL import Image

from qrick.cli import _parse_hex_color, build_parser, main


@pytest.fixture(autouse=True)
def _quiet_logging():
    yield
    root = logging.getLogger("qrick")
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()


class TestHexColor:
    def test_with_and_without_hash(self):
        assert _parse_hex_color("#32CD32") == (0x32, 0xCD, 0x32)
        assert _parse_hex_color("1e1e1e") == (0x1E, 0x1E, 0x1E)

    @pytest.mark.parametrize("value", ["#FFF", "GGGGGG", "#1234567"])
    def test_rejects(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            _parse_hex_color(value)


class TestParser:
    def test_generate_defaults(self):
        args = build_parser().parse_args(["generate", "hello"])
        assert args.fg == (0x32, 0xCD, 0x32)
        assert args.bg == (0x1E, 0x1E, 0x1E)
        assert args.logo is None and args.logo_box is None

    def test_bad_mask_exits(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["bitmap", "x", "-m", "9"])


class TestGenerate:
    def test_writes_png(self, tmp_path, capsys):
        out = tmp_path / "nested" / "qr.png"
        assert main(["generate", "https://qrcode.gomes.lol", "-o", str(out), "--box-size", "2"]) == 0
        with Image.open(out) as img:
            assert img.format == "PNG"
            assert img.size == (74, 74)
        assert "Generated" in capsys.readouterr().out

    def test_with_logo(self, tmp_path, logo_2x1):
        logo_path = tmp_path / "logo.png"
        logo_2x1.save(logo_path)
        out = tmp_path / "qr.png"
        assert main(["generate", "hi", "-o", str(out), "--logo", str(logo_path), "--logo-box", "0.25"]) == 0
        assert out.exists()

    def test_missing_logo(self, tmp_path, capsys):
        code = main(["generate", "hi", "-o", str(tmp_path / "qr.png"), "--logo", str(tmp_path / "nope.png")])
        assert code == 2
        assert "logo not found" in capsys.readouterr().err

    def test_undecodable_logo(self, tmp_path, capsys):
        bad = tmp_path / "logo.png"
        bad.write_bytes(b"definitely not an image")
        assert main(["generate", "hi", "-o", str(tmp_path / "qr.png"), "--logo", str(bad)]) == 2
        assert "cannot decode logo" in capsys.readouterr().err

    def test_too_long(self, tmp_path):
        assert main(["generate", "x" * 501, "-o", str(tmp_path / "qr.png")]) == 2
        assert not (tmp_path / "qr.png").exists()


class TestBitmap:
    def test_role_counts(self, tmp_path, capsys):
        out = tmp_path / "map.png"
        assert main(["bitmap", "HELLO", "-o", str(out), "-m", "3", "--scale", "4"]) == 0
        text = capsys.readouterr().out
        assert "QR Version 1-H (21x21 = 441 modules), mask 3" in text
        assert "Format:       30" in text
        with Image.open(out) as img:
            assert img.size == (84, 84)


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_log_file_gets_json(tmp_path):
    log_file = tmp_path / "qrick.jsonl"
    main(["--log-file", str(log_file), "bitmap", "A", "-o", str(tmp_path / "m.png")])
    for handler in logging.getLogger("qrick").handlers:
        handler.flush()
    assert '"event": "cli.done"' in log_file.read_text()
