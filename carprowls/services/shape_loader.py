"""Download and parse the neighborhood boundary shapefile."""

import logging
import tempfile
import uuid
import zipfile
from pathlib import Path

import geopandas as gpd
import httpx

from carprowls.config import get_settings
from carprowls.exceptions import FilesystemError, NetworkError, ParseError

logger = logging.getLogger(__name__)
settings = get_settings()

WGS84 = "EPSG:4326"


class ShapeLoader:
    """
    Loads neighborhood polygons from a zipped shapefile.

    The archive and its extracted tree live in a scoped temporary directory
    that is removed whether or not parsing succeeds.
    """

    def __init__(
        self,
        url: str = settings.neighborhoods_zip_url,
        shapefile: str = settings.neighborhoods_shapefile,
        id_field: str = settings.neighborhood_id_field,
        name_field: str = settings.neighborhood_name_field,
        work_dir: str | Path | None = None,
        timeout: float = settings.request_timeout_seconds,
    ):
        self.url = url
        self.shapefile = shapefile
        self.id_field = id_field
        self.name_field = name_field
        self.work_dir = work_dir
        self.timeout = timeout

    def load(self) -> gpd.GeoDataFrame:
        """
        Download, extract and parse the neighborhood shapes.

        Returns:
            GeoDataFrame with neighborhood_id, neighborhood_name and geometry
            columns in EPSG:4326
        """
        token = uuid.uuid4().hex
        try:
            with tempfile.TemporaryDirectory(prefix="carprowls-", dir=self.work_dir) as tmp:
                archive = Path(tmp) / f"{token}.zip"
                extract_dir = Path(tmp) / token

                logger.info(f"Downloading neighborhood shapes zip file from {self.url}...")
                self._download(self.url, archive)

                logger.info(f"Unzipping neighborhood shapes zip file into {extract_dir}...")
                self._extract(archive, extract_dir)

                shapes_path = extract_dir / self.shapefile
                logger.info(f"Loading neighborhood shapes file from {shapes_path}...")
                neighborhoods = self._read(shapes_path)

                logger.info(f"Deleting neighborhood shapes working directory at {tmp}...")
        except OSError as e:
            # Only temp dir creation and cleanup reach here unwrapped
            raise FilesystemError(f"Temporary directory error: {e}") from e

        logger.info(f"Loaded {len(neighborhoods)} neighborhood polygons")
        return neighborhoods

    def _download(self, url: str, dest: Path) -> None:
        """Stream the archive at url into dest."""
        try:
            with httpx.stream("GET", url, timeout=self.timeout, follow_redirects=True) as response:
                response.raise_for_status()
                with open(dest, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPStatusError as e:
            raise NetworkError(f"HTTP error downloading {url}: {e}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Request error downloading {url}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Could not write archive to {dest}: {e}") from e

    @staticmethod
    def _extract(archive: Path, dest: Path) -> None:
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(dest)
        except zipfile.BadZipFile as e:
            raise FilesystemError(f"Downloaded file is not a valid zip archive: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Could not extract {archive} to {dest}: {e}") from e

    def _read(self, path: Path) -> gpd.GeoDataFrame:
        """Parse the shapefile and normalize id/name columns and CRS."""
        if not path.exists():
            raise ParseError(f"Shapefile {self.shapefile} not found in archive")

        try:
            shapes = gpd.read_file(path.resolve())
        except Exception as e:
            raise ParseError(f"Could not read shapefile {path}: {e}") from e

        missing = [c for c in (self.id_field, self.name_field) if c not in shapes.columns]
        if missing:
            raise ParseError(f"Shapefile is missing fields: {', '.join(missing)}")

        if shapes.crs is None:
            shapes = shapes.set_crs(WGS84)
        else:
            shapes = shapes.to_crs(WGS84)

        shapes = shapes.rename(
            columns={self.id_field: "neighborhood_id", self.name_field: "neighborhood_name"}
        )
        return shapes[["neighborhood_id", "neighborhood_name", "geometry"]].reset_index(drop=True)
