"""Tests for neighborhood shape loading."""

import os
import shutil
import zipfile
from unittest.mock import patch

import httpx
import pytest

from carprowls.exceptions import FilesystemError, NetworkError, ParseError
from carprowls.services.shape_loader import ShapeLoader


@pytest.fixture
def work_dir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


def serve(zip_path):
    """Fake _download that copies a local archive into place."""

    def download(url, dest):
        shutil.copy(zip_path, dest)

    return download


class TestShapeLoader:
    """Tests for ShapeLoader."""

    def test_load_success(self, neighborhoods_zip, work_dir):
        """Test polygons are parsed, normalized and temp files removed."""
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        with patch.object(loader, "_download", side_effect=serve(neighborhoods_zip)):
            shapes = loader.load()

        assert list(shapes.columns) == ["neighborhood_id", "neighborhood_name", "geometry"]
        assert sorted(shapes["neighborhood_name"]) == ["A", "B"]
        assert shapes.crs.to_epsg() == 4326
        assert list(work_dir.iterdir()) == []

    def test_does_not_change_working_directory(self, neighborhoods_zip, work_dir):
        cwd = os.getcwd()
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        with patch.object(loader, "_download", side_effect=serve(neighborhoods_zip)):
            loader.load()

        assert os.getcwd() == cwd

    def test_reprojects_to_wgs84(
        self, tmp_path, unit_square_neighborhoods, work_dir, write_shapes_zip
    ):
        shapes = unit_square_neighborhoods.rename(
            columns={"neighborhood_id": "OBJECTID", "neighborhood_name": "S_HOOD"}
        ).to_crs(3857)
        zip_path = write_shapes_zip(shapes, tmp_path / "mercator.zip")
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        with patch.object(loader, "_download", side_effect=serve(zip_path)):
            loaded = loader.load()

        assert loaded.crs.to_epsg() == 4326
        square = loaded[loaded["neighborhood_name"] == "A"].geometry.iloc[0]
        assert square.bounds == pytest.approx((-0.5, -0.5, 0.5, 0.5), abs=1e-6)

    def test_custom_fields(
        self, tmp_path, unit_square_neighborhoods, work_dir, write_shapes_zip
    ):
        shapes = unit_square_neighborhoods.rename(
            columns={"neighborhood_id": "HOOD_ID", "neighborhood_name": "L_HOOD"}
        )
        zip_path = write_shapes_zip(shapes, tmp_path / "custom.zip", shapefile="hoods.shp")
        loader = ShapeLoader(
            url="http://test/shapes.zip",
            shapefile="hoods.shp",
            id_field="HOOD_ID",
            name_field="L_HOOD",
            work_dir=work_dir,
        )

        with patch.object(loader, "_download", side_effect=serve(zip_path)):
            loaded = loader.load()

        assert sorted(loaded["neighborhood_id"]) == [1, 2]

    def test_missing_shapefile_cleans_up(self, tmp_path, work_dir):
        """Test parse failure still removes the archive and extraction dir."""
        zip_path = tmp_path / "empty.zip"
        with zipfile.ZipFile(zip_path, "w") as zf:
            zf.writestr("README.txt", "nothing here")
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        with patch.object(loader, "_download", side_effect=serve(zip_path)):
            with pytest.raises(ParseError):
                loader.load()

        assert list(work_dir.iterdir()) == []

    def test_missing_fields_cleans_up(
        self, tmp_path, unit_square_neighborhoods, work_dir, write_shapes_zip
    ):
        shapes = unit_square_neighborhoods.rename(columns={"neighborhood_id": "OBJECTID"})
        zip_path = write_shapes_zip(shapes, tmp_path / "noname.zip")
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        with patch.object(loader, "_download", side_effect=serve(zip_path)):
            with pytest.raises(ParseError, match="S_HOOD"):
                loader.load()

        assert list(work_dir.iterdir()) == []

    def test_corrupt_shapefile_cleans_up(self, tmp_path, work_dir):
        zip_path = tmp_path / "corrupt.zip"
        with zipfile.ZipFile(zip_path, "w") as zf:
            zf.writestr("Neighborhoods/WGS84/Neighborhoods.shp", b"not a shapefile")
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        with patch.object(loader, "_download", side_effect=serve(zip_path)):
            with pytest.raises(ParseError):
                loader.load()

        assert list(work_dir.iterdir()) == []

    def test_bad_archive(self, work_dir):
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        def download(url, dest):
            dest.write_bytes(b"<html>not found</html>")

        with patch.object(loader, "_download", side_effect=download):
            with pytest.raises(FilesystemError):
                loader.load()

        assert list(work_dir.iterdir()) == []

    def test_download_error(self, work_dir):
        loader = ShapeLoader(url="http://test/shapes.zip", work_dir=work_dir)

        with patch("httpx.stream", side_effect=httpx.ConnectError("refused")):
            with pytest.raises(NetworkError):
                loader.load()

        assert list(work_dir.iterdir()) == []

    def test_download_writes_archive(self, neighborhoods_zip, tmp_path):
        """Test streamed bytes land in the destination file."""
        payload = neighborhoods_zip.read_bytes()
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=payload))

        def stream(method, url, **kwargs):
            kwargs.pop("follow_redirects", None)
            kwargs.pop("timeout", None)
            client = httpx.Client(transport=transport)
            return client.stream(method, url, **kwargs)

        dest = tmp_path / "download.zip"
        with patch("httpx.stream", side_effect=stream):
            ShapeLoader(url="http://test/shapes.zip")._download("http://test/shapes.zip", dest)

        assert dest.read_bytes() == payload
