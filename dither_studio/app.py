from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

from flask import Flask, jsonify, request

from .config import SETTINGS, ServiceSettings, configure_logging
from .errors import DitherError, InvalidSettings, SourceError
from .infrastructure.cache import ResponseCache, cache_key
from .infrastructure.encoding import decode_image, encode_buffer
from .infrastructure.network import FETCHER, SourceFetcher
from .infrastructure.presets import PresetNotFound, PresetStore, create_preset_store
from .infrastructure.responses import RenderedImage, format_bytes, send_dithered
from .processing.palette import generate_palette
from .processing.pipeline import process
from .processing.types import DitherSettings

APP_VERSION = "1.0.0"

ENDPOINTS = (
    ("POST", "/dither", "Dither an uploaded image (multipart field 'image')"),
    ("GET", "/dither?source_url=...", "Dither an image fetched from a URL"),
    ("GET", "/palette", "Colors generated for the palette fields in the query"),
    ("GET", "/presets", "List stored presets"),
    ("GET, PUT, DELETE", "/presets/<name>", "Read, store or remove a preset"),
    ("GET", "/health", "Liveness check"),
)


def _request_values() -> Dict[str, Any]:
    values: Dict[str, Any] = dict(request.args.items())
    values.update(request.form.items())
    return values


def resolve_settings(values: Mapping[str, Any], presets: PresetStore) -> DitherSettings:
    """Build settings from request fields, layered over a named preset if given."""
    base = DitherSettings()
    preset_name = values.get("preset")
    if preset_name:
        stored = presets.get(preset_name)
        if stored is None:
            raise PresetNotFound(preset_name)
        base = DitherSettings.from_mapping(stored)
    return DitherSettings.from_mapping(values, base)


def create_app(
    settings: ServiceSettings = SETTINGS,
    *,
    fetcher: SourceFetcher | None = None,
    presets: PresetStore | None = None,
    cache: ResponseCache | None = None,
) -> Flask:
    logger = configure_logging(settings)
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_mb * 1024 * 1024

    fetcher = fetcher or FETCHER
    presets = presets if presets is not None else create_preset_store(settings)
    cache = cache if cache is not None else ResponseCache(settings.cache_ttl, settings.cache_entries)

    @app.errorhandler(DitherError)
    def handle_dither_error(exc: DitherError):
        return jsonify(error=str(exc), type=type(exc).__name__), 400

    @app.errorhandler(PresetNotFound)
    def handle_missing_preset(exc: PresetNotFound):
        return jsonify(error=f"Unknown preset: {exc.args[0]}", type="PresetNotFound"), 404

    @app.errorhandler(SourceError)
    def handle_source_error(exc: SourceError):
        logger.warning("Source error: %s", exc)
        return jsonify(error=str(exc), type="SourceError"), 502

    def _read_source(values: Mapping[str, Any]) -> Tuple[bytes, str]:
        upload = request.files.get("image")
        if upload is not None and upload.filename:
            return upload.read(), upload.filename
        source_url = values.get("source_url")
        if source_url:
            return fetcher.fetch_source(source_url), source_url
        raise InvalidSettings("Provide an 'image' upload or a 'source_url'")

    @app.route("/dither", methods=["GET", "POST"])
    def dither():
        values = _request_values()
        dither_settings = resolve_settings(values, presets)
        source_bytes, source_name = _read_source(values)

        key = cache_key(source_bytes, dither_settings.to_mapping())
        rendered = cache.get(key)
        if rendered is None:
            result = process(decode_image(source_bytes), dither_settings)
            data = encode_buffer(
                result.buffer,
                dither_settings.output_format,
                gif_quality=dither_settings.gif_quality,
                palette=result.palette,
            )
            rendered = RenderedImage.from_result(data, dither_settings.output_format, result)
            cache.put(key, rendered)
        else:
            logger.debug("Cache hit for %s", source_name)

        logger.info(
            "Dithered %s: %s -> %s (%s, %s)",
            source_name,
            format_bytes(len(source_bytes)),
            format_bytes(len(rendered.data)),
            dither_settings.algorithm.value,
            dither_settings.palette.kind.value,
        )
        return send_dithered(rendered, original_size=len(source_bytes))

    @app.route("/palette")
    def palette():
        dither_settings = DitherSettings.from_mapping(dict(request.args.items()))
        colors = generate_palette(dither_settings.palette)
        return jsonify(
            palette=dither_settings.palette.kind.value,
            count=len(colors),
            colors=[list(color) for color in colors],
        )

    @app.route("/presets")
    def list_presets():
        return jsonify(presets=presets.list_names())

    @app.route("/presets/<name>", methods=["GET", "PUT", "DELETE"])
    def preset(name: str):
        if request.method == "GET":
            stored = presets.get(name)
            if stored is None:
                raise PresetNotFound(name)
            return jsonify(name=name, settings=stored)

        if request.method == "DELETE":
            if not presets.delete(name):
                raise PresetNotFound(name)
            return "", 204

        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise InvalidSettings("Preset body must be a JSON object")
        normalized = DitherSettings.from_mapping(payload).to_mapping()
        presets.save(name, normalized)
        logger.info("Stored preset %s", name)
        return jsonify(name=name, settings=normalized), 200

    @app.route("/health")
    def health():
        return jsonify(ok=True, version=APP_VERSION)

    @app.route("/")
    def index():
        return jsonify(
            name="dither-studio",
            version=APP_VERSION,
            defaults=DitherSettings().to_mapping(),
            endpoints=[
                {"methods": methods, "path": path, "description": description}
                for methods, path, description in ENDPOINTS
            ],
        )

    return app


# Expose a module-level Flask application for WSGI servers (``dither_studio.app:app``).
app = create_app()
application = app
