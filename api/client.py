"""Granola API client"""
import logging
from typing import Any, Dict, List, Optional

from .transport import HttpTransport

logger = logging.getLogger(__name__)


class GranolaAPIClient:
    """Typed wrapper over the Granola HTTP API (every endpoint is a POST)"""

    def __init__(self, transport: HttpTransport):
        self.transport = transport

    def set_token(self, token: str) -> None:
        self.transport.set_token(token)

    def get_documents(self, workspace_id: Optional[str] = None,
                      limit: Optional[int] = None,
                      offset: Optional[int] = None,
                      cursor: Optional[str] = None,
                      include_last_viewed_panel: bool = False) -> Dict[str, Any]:
        """List meeting documents. Response: {'docs': [...], 'next_cursor': ...}"""
        body: Dict[str, Any] = {'include_last_viewed_panel': include_last_viewed_panel}
        if workspace_id:
            body['workspace_id'] = workspace_id
        if limit is not None:
            body['limit'] = limit
        if offset is not None:
            body['offset'] = offset
        if cursor:
            body['cursor'] = cursor

        logger.debug(f"Fetching documents: {body}")
        return self.transport.post('/v2/get-documents', body)

    def get_documents_batch(self, document_ids: List[str],
                            include_last_viewed_panel: bool = False) -> Dict[str, Any]:
        return self.transport.post('/v1/get-documents-batch', {
            'document_ids': document_ids,
            'include_last_viewed_panel': include_last_viewed_panel,
        })

    def get_document_metadata(self, document_id: str) -> Dict[str, Any]:
        return self.transport.post('/v1/get-document-metadata', {'document_id': document_id})

    def get_document_transcript(self, document_id: str) -> List[Dict[str, Any]]:
        """Transcript segments for a meeting, in recording order"""
        logger.debug(f"Fetching transcript for meeting: {document_id}")
        return self.transport.post('/v1/get-document-transcript', {'document_id': document_id})

    def get_document_lists(self) -> List[Dict[str, Any]]:
        """All folders (document lists) visible to the user"""
        return self.transport.post('/v2/get-document-lists', {})

    def get_document_list(self, folder_id: str) -> Optional[Dict[str, Any]]:
        """A single folder by id, or None if it doesn't exist"""
        for folder in self.get_document_lists():
            if folder.get('id') == folder_id:
                return folder
        return None

    def get_workspaces(self) -> Dict[str, Any]:
        return self.transport.post('/v1/get-workspaces', {})
