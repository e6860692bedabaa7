from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx
from mimir_ingest.core.errors import ProtocolError
from mimir_ingest.fetch.download import fetch
from mimir_ingest.fetch.http import make_http_client, request_with_retries
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .base import BaseHandler, IndexOptions, indexer_args, release_binary, run_command


class NtfsDownload(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    filename: str
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    thumbnail: bool = False


class NtfsFields(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    download: NtfsDownload
    description: Optional[str] = None
    format: Optional[str] = None
    licence: Optional[str] = None
    license_link: Optional[str] = None
    update_date: Optional[str] = None
    validity_start_date: Optional[str] = None
    validity_end_date: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)


class NtfsDataset(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    datasetid: str
    recordid: str
    fields: NtfsFields
    record_timestamp: Optional[str] = None


class NtfsSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    nhits: int = 0
    records: list[NtfsDataset] = Field(default_factory=list)


class NtfsHandler(BaseHandler):
    """
    Transit feeds published on an open-data portal.

    The region names the portal dataset; its newest record points at the
    archive to download.
    """

    name = "ntfs"

    def __init__(
        self,
        *,
        portal_url: str = "https://navitia.opendatasoft.com/",
        client: httpx.Client | None = None,
        max_attempts: int = 3,
    ) -> None:
        self.portal_url = portal_url if portal_url.endswith("/") else portal_url + "/"
        self.client = client
        self.max_attempts = max_attempts

    def search_url(self) -> str:
        return self.portal_url + "api/records/1.0/search/"

    def file_url(self, record: NtfsDataset) -> str:
        return (
            f"{self.portal_url}explore/dataset/{record.datasetid}"
            f"/files/{record.fields.download.id}/download/"
        )

    def find_dataset(self, region: str) -> NtfsDataset:
        client = self.client or make_http_client()
        try:
            resp = request_with_retries(
                client,
                method="GET",
                url=self.search_url(),
                params={"dataset": region, "sort": "-update_date", "rows": "1"},
                max_attempts=self.max_attempts,
            )
            try:
                found = NtfsSearchResponse.model_validate_json(resp.content)
            except ValidationError as e:
                raise ProtocolError(
                    f"Could not decode dataset listing for {region}: {e}"
                ) from e
        finally:
            if self.client is None:
                client.close()

        if not found.records:
            raise ProtocolError(f"No NTFS dataset published for {region}")
        return found.records[0]

    def download(self, working_dir: Path, region: str) -> Path:
        record = self.find_dataset(region)
        res = fetch(
            self.file_url(record),
            Path(working_dir) / "ntfs",
            filename=record.fields.download.filename,
            client=self.client,
            max_attempts=self.max_attempts,
        )
        return res.path

    def index(
        self,
        handlers_dir: Path,
        index_endpoint: str,
        path: Path,
        options: IndexOptions,
    ) -> None:
        run_command(
            release_binary(handlers_dir, "ntfs2mimir"),
            indexer_args(index_endpoint, path),
        )
