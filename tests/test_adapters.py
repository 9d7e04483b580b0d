import hashlib
import io

import httpx
import pytest
from starlette.datastructures import UploadFile

from camper.services.geocoding import GeocodingError, GeoPoint, MapboxGeocoder, NoMatch
from camper.services.http_client import UpstreamHttpClient
from camper.services.storage import (
    CloudinaryImageStore,
    ImageStoreError,
    LocalImageStore,
    cloudinary_signature,
)


def _http(handler) -> UpstreamHttpClient:
    return UpstreamHttpClient(timeout_seconds=5.0, transport=httpx.MockTransport(handler))


def _upload(name: str = "tent.png", data: bytes = b"\x89PNG fake") -> UploadFile:
    return UploadFile(io.BytesIO(data), filename=name)


# ---- geocoding ----

@pytest.mark.asyncio
async def test_mapbox_returns_first_feature_point():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"features": [{"geometry": {"type": "Point", "coordinates": [-109.55, 38.57]}}]})

    geocoder = MapboxGeocoder(access_token="pk.test", base_url="https://geo.test/places/", http=_http(handler))
    point = await geocoder.forward_geocode("Moab, UT")

    assert point == GeoPoint(longitude=-109.55, latitude=38.57)
    (req,) = seen
    assert req.url.raw_path.startswith(b"/places/Moab%2C%20UT.json?")
    assert req.url.params["access_token"] == "pk.test"
    assert req.url.params["limit"] == "1"


@pytest.mark.asyncio
async def test_mapbox_no_features_is_no_match():
    geocoder = MapboxGeocoder(
        access_token="pk.test",
        base_url="https://geo.test/places",
        http=_http(lambda request: httpx.Response(200, json={"features": []})),
    )
    with pytest.raises(NoMatch):
        await geocoder.forward_geocode("Atlantis")


@pytest.mark.asyncio
async def test_mapbox_http_failure_is_geocoding_error():
    geocoder = MapboxGeocoder(
        access_token="pk.test",
        base_url="https://geo.test/places",
        http=_http(lambda request: httpx.Response(503, text="busy")),
    )
    with pytest.raises(GeocodingError):
        await geocoder.forward_geocode("Moab, UT")


@pytest.mark.asyncio
async def test_mapbox_transport_failure_is_geocoding_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    geocoder = MapboxGeocoder(access_token="pk.test", base_url="https://geo.test/places", http=_http(handler))
    with pytest.raises(GeocodingError):
        await geocoder.forward_geocode("Moab, UT")


@pytest.mark.asyncio
async def test_mapbox_without_token_refuses():
    calls = []
    geocoder = MapboxGeocoder(
        access_token="",
        base_url="https://geo.test/places",
        http=_http(lambda request: calls.append(request) or httpx.Response(200, json={})),
    )
    with pytest.raises(GeocodingError):
        await geocoder.forward_geocode("Moab, UT")
    assert calls == []


# ---- http client ----

@pytest.mark.asyncio
async def test_http_client_wraps_non_json_errors():
    client = _http(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))
    res = await client.get(url="https://up.test/x")
    assert not res.ok
    assert res.status_code == 502
    assert res.error_code == "HTTP_502"
    assert res.detail["raw"] == "<html>bad gateway</html>"


@pytest.mark.asyncio
async def test_http_client_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    res = await _http(handler).get(url="https://up.test/x")
    assert not res.ok
    assert res.status_code is None
    assert res.error_code == "TIMEOUT"


# ---- cloudinary ----

def test_cloudinary_signature_sorts_and_skips_empty():
    expected = hashlib.sha1(b"folder=Camper&timestamp=1315060510abcd").hexdigest()
    assert cloudinary_signature({"timestamp": "1315060510", "folder": "Camper", "eager": ""}, "abcd") == expected


@pytest.mark.asyncio
async def test_cloudinary_upload_and_destroy():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/upload"):
            return httpx.Response(
                200,
                json={"secure_url": "https://res.cloudinary.com/demo/image/upload/v1/Camper/abc.png", "public_id": "Camper/abc"},
            )
        return httpx.Response(200, json={"result": "ok"})

    store = CloudinaryImageStore(
        cloud_name="demo", api_key="key", api_secret="secret", folder="Camper", http=_http(handler),
        base_url="https://cloud.test/v1_1",
    )
    stored = await store.upload(_upload())
    assert stored.filename == "Camper/abc"
    assert stored.url.endswith("/Camper/abc.png")

    await store.delete("Camper/abc")

    upload_req, destroy_req = seen
    assert upload_req.url.path == "/v1_1/demo/image/upload"
    assert b'name="signature"' in upload_req.content
    assert b'name="folder"' in upload_req.content
    assert destroy_req.url.path == "/v1_1/demo/image/destroy"
    assert b"public_id=Camper%2Fabc" in destroy_req.content


@pytest.mark.asyncio
async def test_cloudinary_destroy_of_missing_file_is_fine():
    store = CloudinaryImageStore(
        cloud_name="demo", api_key="key", api_secret="secret", folder="Camper",
        http=_http(lambda request: httpx.Response(200, json={"result": "not found"})),
    )
    await store.delete("Camper/gone")


@pytest.mark.asyncio
async def test_cloudinary_failures_raise():
    store = CloudinaryImageStore(
        cloud_name="demo", api_key="key", api_secret="secret", folder="Camper",
        http=_http(lambda request: httpx.Response(401, json={"error": {"message": "bad key"}})),
    )
    with pytest.raises(ImageStoreError):
        await store.upload(_upload())
    with pytest.raises(ImageStoreError):
        await store.delete("Camper/abc")


@pytest.mark.asyncio
async def test_cloudinary_upload_response_without_id_raises():
    store = CloudinaryImageStore(
        cloud_name="demo", api_key="key", api_secret="secret", folder="Camper",
        http=_http(lambda request: httpx.Response(200, json={"secure_url": "https://x"})),
    )
    with pytest.raises(ImageStoreError):
        await store.upload(_upload())


# ---- local disk ----

@pytest.mark.asyncio
async def test_local_store_writes_and_removes(tmp_path):
    store = LocalImageStore(str(tmp_path), folder="Camper")
    stored = await store.upload(_upload("tent.PNG", b"pixels"))

    assert stored.filename.startswith("Camper/")
    assert stored.filename.endswith(".png")
    assert stored.url == f"/media/{stored.filename}"
    assert (tmp_path / stored.filename).read_bytes() == b"pixels"

    await store.delete(stored.filename)
    assert not (tmp_path / stored.filename).exists()
    # second delete of the same file is quiet
    await store.delete(stored.filename)


@pytest.mark.asyncio
async def test_local_store_unknown_extension_defaults_to_jpg(tmp_path):
    store = LocalImageStore(str(tmp_path), folder="Camper")
    stored = await store.upload(_upload("payload.exe"))
    assert stored.filename.endswith(".jpg")


@pytest.mark.asyncio
async def test_local_store_refuses_paths_outside_base(tmp_path):
    store = LocalImageStore(str(tmp_path / "media"), folder="Camper")
    with pytest.raises(ImageStoreError):
        await store.delete("../outside.jpg")
