"""CaseVault API client."""

import json
import mimetypes
import os
from typing import Optional

import requests

from casevault_sdk.hashing import hash_file


class CaseVaultClient:
    """Client for CaseVault API."""

    def __init__(self, api_key: str, base_url: str = "http://localhost:8000"):
        """Initialize client."""
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({"x-api-key": api_key})

    def create_case(
        self,
        case_name: str,
        client_id: int,
        case_number: Optional[str] = None,
        case_type: Optional[str] = None,
        priority: str = "Medium",
        team_members: Optional[list] = None,
    ) -> dict:
        """Create a case."""
        url = f"{self.base_url}/v1/cases"
        payload = {
            "case_name": case_name,
            "client_id": client_id,
            "case_number": case_number,
            "case_type": case_type,
            "priority": priority,
            "team_members": team_members or [],
        }
        response = self.session.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    def upload_evidence(
        self,
        case_id: int,
        path: str,
        summary: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> dict:
        """Hash a file locally and upload it with its digest."""
        file_hash = hash_file(path)
        file_name = os.path.basename(path)
        content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"

        data = {"file_hash": file_hash}
        if summary:
            data["summary"] = summary
        if metadata:
            data["metadata"] = json.dumps(metadata)

        url = f"{self.base_url}/v1/cases/{case_id}/evidence"
        with open(path, "rb") as f:
            response = self.session.post(
                url, data=data, files={"file": (file_name, f, content_type)}
            )
        response.raise_for_status()
        return response.json()

    def record_custody_event(
        self,
        case_id: int,
        evidence_id: int,
        event_type: str,
        reason: str,
        **fields,
    ) -> dict:
        """Record a chain-of-custody event."""
        url = f"{self.base_url}/v1/cases/{case_id}/chain-of-custody"
        payload = {"evidence_id": evidence_id, "event_type": event_type, "reason": reason}
        payload.update(fields)
        response = self.session.post(url, json=payload)
        response.raise_for_status()
        return response.json()

    def get_audit_log(self, case_id: int) -> dict:
        """Get a case's audit log in chain order."""
        url = f"{self.base_url}/v1/cases/{case_id}/audit-log"
        response = self.session.get(url)
        response.raise_for_status()
        return response.json()

    def verify_audit_log(self, case_id: int, record: bool = False) -> dict:
        """Ask the server to verify a case's audit chain."""
        url = f"{self.base_url}/v1/cases/{case_id}/audit-log/verify"
        response = self.session.get(url, params={"record": str(record).lower()})
        response.raise_for_status()
        return response.json()

    def export_audit_log(self, case_id: int) -> bytes:
        """Download a case's audit log as CSV."""
        url = f"{self.base_url}/v1/cases/{case_id}/audit-log/export.csv"
        response = self.session.get(url)
        response.raise_for_status()
        return response.content
