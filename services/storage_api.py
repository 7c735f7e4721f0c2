"""Wrapper for the object-storage API holding submitted files."""

from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

import config
from api_clients import is_success
from core.models import ListObjectsRequest, SortOptions, StoredObject
from services.rest_api import RestService
from utils.logger import get_logger
from utils.error_handler import APIError

logger = get_logger()


def without_placeholders(objects: List[StoredObject]) -> List[StoredObject]:
    """Drops the marker entries the storage API keeps in empty folders."""
    return [o for o in objects if o.name != config.PLACEHOLDER_OBJECT_NAME]


class StorageService:
    """Derives object paths for submissions and fetches their contents.

    Files are addressed by the uploader's auth id and the submission row id
    (``submissions/<authId>/<submissionId>``). Listings walk the older
    folder layout ``<student>/<assignment>/<version>/<file>``.
    """

    SERVICE_NAME = 'storage'

    def __init__(self, rest: RestService, bucket: str = config.SUBMISSIONS_BUCKET):
        self.rest = rest
        self.bucket = bucket

    # --- Paths ---

    def object_path(self, auth_id: str, submission_id: str) -> str:
        return f"{config.STORAGE_PATH}{self.bucket}/{auth_id}/{submission_id}"

    @staticmethod
    def listing_path(student_id: str, assignment_id: str, version: Optional[str] = None, file_name: Optional[str] = None) -> str:
        """Builds a folder-layout path, stopping at the first part left out."""
        parts = [student_id, assignment_id]
        for part in (version, file_name):
            if part is None:
                break
            parts.append(part)
        return "/".join(parts)

    # --- Listings ---

    def list_objects(self, prefix: str, limit: int = config.LIST_LIMIT, offset: int = 0) -> List[StoredObject]:
        """Lists the entries directly under `prefix`, placeholders removed.

        Returns:
            The entries, or an empty list on a non-success status.
        """
        body = ListObjectsRequest(
            limit=limit,
            offset=offset,
            sort_by=SortOptions(column=config.LIST_SORT_COLUMN, order=config.LIST_SORT_ORDER),
            prefix=prefix,
        )
        status, payload = self.rest.insert(
            f"{config.STORAGE_PATH}list/{self.bucket}",
            body.model_dump(by_alias=True),
            idempotent=True,
        )
        if not is_success(status) or not payload:
            return []
        try:
            objects = TypeAdapter(List[StoredObject]).validate_python(payload)
        except ValidationError as e:
            logger.error(f"Unexpected listing shape under '{prefix}': {e}", exc_info=config.DEBUG)
            raise APIError(f"Unexpected listing shape under '{prefix}'.", status_code=status, service=self.SERVICE_NAME) from e
        objects = without_placeholders(objects)
        logger.debug(f"Listed {len(objects)} entries under '{prefix}'.")
        return objects

    def list_versions(self, student_id: str, assignment_id: str) -> List[StoredObject]:
        """The version folders (``v1``, ``v2``, ...) a student uploaded for an assignment."""
        return self.list_objects(self.listing_path(student_id, assignment_id))

    def list_files(self, student_id: str, assignment_id: str, version: str) -> List[StoredObject]:
        """The files inside one version folder."""
        return self.list_objects(self.listing_path(student_id, assignment_id, version))

    # --- Downloads ---

    def fetch_bytes(self, path: str) -> Optional[bytes]:
        """Returns the raw object contents, or None on a non-success status."""
        response = self.rest.get(path)
        if not is_success(response.status):
            return None
        logger.info(f"Downloaded {len(response.data or b'')} bytes from {path}.")
        return response.data or b""

    def fetch_text(self, path: str, encoding: str = "utf-8") -> Optional[str]:
        """Returns the object contents decoded as text, or None on a non-success status."""
        data = self.fetch_bytes(path)
        if data is None:
            return None
        return data.decode(encoding, errors="replace")
