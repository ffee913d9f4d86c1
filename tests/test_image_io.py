import io

from PIL import Image

from lensocr.image_io import load_image


def _encode(img: Image.Image, fmt: str, **kw) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt, **kw)
    return buf.getvalue()


def test_small_png_is_passed_through(tmp_path) -> None:
    data = _encode(Image.new("RGB", (120, 80), "white"), "PNG")
    path = tmp_path / "small.png"
    path.write_bytes(data)

    payload = load_image(path)

    assert payload.data == data
    assert (payload.width, payload.height) == (120, 80)
    assert payload.mime == "image/png"


def test_jpeg_keeps_its_mime() -> None:
    payload = load_image(_encode(Image.new("RGB", (30, 30), "red"), "JPEG"))
    assert payload.mime == "image/jpeg"
    assert payload.extension == "jpg"


def test_large_image_is_downscaled_and_declared_size_matches() -> None:
    payload = load_image(_encode(Image.new("RGB", (3000, 1500), "white"), "JPEG"), max_side=1000)

    assert (payload.width, payload.height) == (1000, 500)
    assert payload.mime == "image/png"
    with Image.open(io.BytesIO(payload.data)) as im:
        assert im.size == (1000, 500)


def test_unsupported_format_is_reencoded_as_png() -> None:
    payload = load_image(_encode(Image.new("RGB", (50, 40), "blue"), "BMP"))
    assert payload.mime == "image/png"
    with Image.open(io.BytesIO(payload.data)) as im:
        assert im.format == "PNG"
        assert im.size == (50, 40)


def test_exif_rotation_is_applied() -> None:
    img = Image.new("RGB", (60, 20), "white")
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 degrees clockwise
    payload = load_image(_encode(img, "JPEG", exif=exif.tobytes()))
    assert (payload.width, payload.height) == (20, 60)
