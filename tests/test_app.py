from __future__ import annotations

import io

import pytest
from PIL import Image

from dither_studio.app import create_app, resolve_settings
from dither_studio.errors import SourceError
from dither_studio.infrastructure.cache import ResponseCache
from dither_studio.infrastructure.presets import InMemoryPresetStore, PresetNotFound
from dither_studio.processing.palette import CGA4_PALETTE
from dither_studio.processing.types import Algorithm, DitherSettings, PaletteSpec


def png_bytes(size=(8, 4), color=(120, 140, 200)) -> bytes:
    img = Image.new("RGB", size, color=color)
    for x in range(size[0]):
        img.putpixel((x, 0), (x * 30, 255 - x * 30, 60))
    out = io.BytesIO()
    img.save(out, "PNG")
    return out.getvalue()


class FakeFetcher:
    def __init__(self, payload: bytes | None = None) -> None:
        self.payload = payload
        self.urls = []

    def fetch_source(self, url: str) -> bytes:
        self.urls.append(url)
        if self.payload is None:
            raise SourceError(f"Could not fetch {url}")
        return self.payload


@pytest.fixture
def presets():
    return InMemoryPresetStore()


@pytest.fixture
def cache():
    return ResponseCache(ttl=60, max_entries=8)


@pytest.fixture
def fetcher():
    return FakeFetcher(png_bytes())


@pytest.fixture
def client(presets, cache, fetcher):
    app = create_app(fetcher=fetcher, presets=presets, cache=cache)
    app.config["TESTING"] = True
    return app.test_client()


def upload(client, payload=None, **fields):
    data = {"image": (io.BytesIO(payload or png_bytes()), "photo.png")}
    data.update(fields)
    return client.post("/dither", data=data, content_type="multipart/form-data")


def test_resolve_settings_defaults(presets) -> None:
    assert resolve_settings({}, presets) == DitherSettings()


def test_resolve_settings_layers_fields_over_preset(presets) -> None:
    presets.save("retro", {"algorithm": "ordered", "palette": "2bit"})

    settings = resolve_settings({"preset": "retro", "diffusionFactor": "0.1"}, presets)

    assert settings.algorithm is Algorithm.ORDERED
    assert settings.palette == PaletteSpec.cga4()
    assert settings.diffusion_factor == 0.1


def test_resolve_settings_unknown_preset(presets) -> None:
    with pytest.raises(PresetNotFound):
        resolve_settings({"preset": "nope"}, presets)


def test_dither_upload_returns_png_with_statistics(client) -> None:
    source = png_bytes()

    response = upload(client, source, algorithm="atkinson", palette="2bit")

    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert "dithered_image.png" in response.headers["Content-Disposition"]
    assert response.headers["X-Original-Size"] == str(len(source))
    assert response.headers["X-Dithered-Size"] == str(len(response.data))
    assert response.headers["X-Palette-Size"] == "4"
    assert response.headers["X-Compression-Ratio"].endswith(":1")
    assert response.headers["X-Size-Reduction"].endswith("%")

    with Image.open(io.BytesIO(response.data)) as img:
        assert img.size == (8, 4)
        colors = {color[:3] for _, color in img.convert("RGBA").getcolors()}
    assert colors <= set(CGA4_PALETTE)


def test_dither_resize_and_gif_output(client) -> None:
    response = upload(client, resize="true", maxDimension="4", outputFormat="gif", gifQuality="3")

    assert response.status_code == 200
    assert response.mimetype == "image/gif"
    assert "dithered_image.gif" in response.headers["Content-Disposition"]
    assert response.headers["X-Image-Width"] == "4"
    assert response.headers["X-Image-Height"] == "2"


def test_dither_repeated_request_hits_cache(client, cache) -> None:
    first = upload(client, palette="extreme")
    second = upload(client, palette="extreme")

    assert first.data == second.data
    assert len(cache) == 1
    assert second.headers["X-Palette-Size"] == "3"


def test_dither_requires_an_image(client) -> None:
    response = client.post("/dither", data={"palette": "bw"})

    assert response.status_code == 400
    assert response.get_json()["type"] == "InvalidSettings"


@pytest.mark.parametrize(
    "fields, error_type",
    [
        ({"palette": "sepia"}, "InvalidPaletteSpec"),
        ({"diffusionFactor": "3"}, "InvalidSettings"),
        ({"outputFormat": "tiff"}, "InvalidSettings"),
    ],
)
def test_dither_rejects_bad_settings(client, fields, error_type) -> None:
    response = upload(client, **fields)

    assert response.status_code == 400
    assert response.get_json()["type"] == error_type


def test_dither_rejects_undecodable_upload(client) -> None:
    response = upload(client, b"not an image at all")

    assert response.status_code == 400
    assert response.get_json()["type"] == "InvalidImage"


def test_dither_from_source_url(client, fetcher) -> None:
    response = client.get("/dither", query_string={"source_url": "http://cam.local/snap.png", "algorithm": "ordered"})

    assert response.status_code == 200
    assert fetcher.urls == ["http://cam.local/snap.png"]


def test_dither_source_failure_is_bad_gateway(presets, cache) -> None:
    app = create_app(fetcher=FakeFetcher(None), presets=presets, cache=cache)

    response = app.test_client().get("/dither", query_string={"source_url": "http://cam.local/x.png"})

    assert response.status_code == 502
    assert response.get_json()["type"] == "SourceError"


def test_preset_crud_and_use(client) -> None:
    stored = client.put("/presets/retro", json={"algorithm": "ordered", "palette": "2bit"})
    assert stored.status_code == 200
    assert stored.get_json()["settings"]["palette"] == "2bit"

    assert client.get("/presets").get_json() == {"presets": ["retro"]}
    assert client.get("/presets/retro").get_json()["settings"]["algorithm"] == "ordered"

    response = upload(client, preset="retro")
    assert response.headers["X-Palette-Size"] == "4"

    assert client.delete("/presets/retro").status_code == 204
    assert client.get("/presets/retro").status_code == 404
    assert client.delete("/presets/retro").status_code == 404


def test_preset_put_validates_body(client) -> None:
    assert client.put("/presets/bad", json={"palette": "sepia"}).status_code == 400
    assert client.put("/presets/bad", data="nope").status_code == 400


def test_dither_with_unknown_preset(client) -> None:
    response = upload(client, preset="ghost")

    assert response.status_code == 404


def test_palette_endpoint(client) -> None:
    payload = client.get("/palette", query_string={"palette": "custom", "customColors": "10"}).get_json()

    assert payload["count"] == 10
    assert payload["colors"][:2] == [[0, 0, 0], [0, 0, 128]]


def test_health_and_index(client) -> None:
    assert client.get("/health").get_json()["ok"] is True

    index = client.get("/").get_json()
    assert index["defaults"]["algorithm"] == "floydSteinberg"
    assert any(endpoint["path"] == "/dither" for endpoint in index["endpoints"])


def test_dither_rejects_decompression_bomb(client, monkeypatch) -> None:
    payload = png_bytes(size=(10, 10))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

    response = upload(client, payload)

    assert response.status_code == 400
    assert response.get_json()["type"] == "InvalidImage"
