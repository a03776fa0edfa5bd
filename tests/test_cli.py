import logging

import pytest
from PIL import Image

from qrstyle.cli import build_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LOG_LEVEL", "LOG_FILE", "LOG_JSON", "SIZE", "MARGIN", "ERROR_LEVEL", "PITCH_STRATEGY"):
        monkeypatch.delenv(f"QRSTYLE_{name}", raising=False)
    yield
    root = logging.getLogger("qrstyle")
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


def test_parser_defaults():
    args = build_parser().parse_args(["render", "HELLO"])
    assert args.output == "output/qr.png"
    assert args.shape == "squares"
    assert args.size is None
    assert args.stop is None


def test_stop_parsing():
    args = build_parser().parse_args(["render", "HELLO", "--gradient", "linear",
                                      "--stop", "0:#ff0000", "--stop", "1:#0000ff"])
    assert [s.offset for s in args.stop] == [0.0, 1.0]
    with pytest.raises(SystemExit):
        build_parser().parse_args(["render", "HELLO", "--stop", "red"])


def test_capacity(capsys):
    main(["capacity", "HELLO", "-e", "M"])
    out = capsys.readouterr().out
    assert "Mode: alphanumeric (5 chars)" in out
    assert "min version  1" in out


def test_capacity_all_levels(capsys):
    main(["capacity", "0123"])
    out = capsys.readouterr().out
    for level in "LMQH":
        assert f"  {level}:" in out


def test_render_png(tmp_path, capsys):
    path = tmp_path / "qr.png"
    main(["render", "HELLO", "-o", str(path), "--size", "290"])
    out = capsys.readouterr().out
    assert "Version: 1, ECC: M" in out
    with Image.open(path) as img:
        assert img.size == (290, 290)


def test_render_svg_from_extension(tmp_path):
    path = tmp_path / "nested" / "qr.svg"
    main(["render", "HELLO", "-o", str(path), "--shape", "dots"])
    svg = path.read_text()
    assert svg.startswith("<svg")
    # 300 // 29 = 10 px modules, drawn from the grid the render used
    assert "h10v10h-10z" in svg


def test_render_styled_with_logo(tmp_path, capsys, logo_png_bytes):
    logo = tmp_path / "logo.png"
    logo.write_bytes(logo_png_bytes)
    path = tmp_path / "styled.png"
    main(["render", "HELLO", "-o", str(path), "-e", "L", "--shape", "dots",
          "--gradient", "radial", "--logo", str(logo), "--transparent"])
    out = capsys.readouterr().out
    assert "ECC: H (requested L)" in out
    assert "shape: dots" in out
    with Image.open(path) as img:
        assert img.mode == "RGBA"


def test_render_insufficient_version_exits_2(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main(["render", "x!" * 100, "-e", "H", "-v", "1", "-o", str(tmp_path / "qr.png")])
    assert info.value.code == 2
    err = capsys.readouterr().err
    assert "Minimum version required: 15" in err
    assert "--version 15" in err
    assert not (tmp_path / "qr.png").exists()


def test_render_invalid_options_exit_2(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main(["render", "HELLO", "--fg", "#ffffff", "-o", str(tmp_path / "qr.png")])
    assert info.value.code == 2
    assert "Invalid options" in capsys.readouterr().err


def test_grid(tmp_path, capsys, raster):
    path = tmp_path / "symbol.png"
    raster.save(path)
    main(["grid", str(path), "-q"])
    out = capsys.readouterr().out
    assert "Pitch: 8px, grid: 29x29" in out
    assert "██" not in out


def test_grid_with_strategy_prints_modules(tmp_path, capsys, raster):
    path = tmp_path / "symbol.png"
    raster.save(path)
    main(["grid", str(path), "--strategy", "shortest-run"])
    assert "██" in capsys.readouterr().out


def test_bad_environment_exits_2(monkeypatch, capsys):
    monkeypatch.setenv("QRSTYLE_SIZE", "tiny")
    with pytest.raises(SystemExit) as info:
        main(["capacity", "HELLO"])
    assert info.value.code == 2
    assert "QRSTYLE_SIZE" in capsys.readouterr().err


def test_no_command_exits_1(capsys):
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 1


def test_render_unsupported_format_exits_2_before_rendering(tmp_path, capsys):
    out = tmp_path / "nested" / "qr.gif"
    with pytest.raises(SystemExit) as info:
        main(["render", "HELLO", "-o", str(out)])
    assert info.value.code == 2
    assert "unsupported output format 'gif'" in capsys.readouterr().err
    assert not out.parent.exists()


def test_render_bad_quality_exits_2(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main(["render", "HELLO", "-o", str(tmp_path / "qr.jpg"), "--quality", "5"])
    assert info.value.code == 2
    assert "quality" in capsys.readouterr().err


def test_render_lowercase_url_overflows(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main(["render", "https://example.com", "-o", str(tmp_path / "qr.png")])
    assert info.value.code == 1
    assert "does not fit in a version 1 symbol" in capsys.readouterr().err
