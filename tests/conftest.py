# /tests/conftest.py

import json
import os
from urllib.parse import parse_qsl, urlsplit

# Keep test runs from writing log files; must happen before config is imported.
os.environ["AUTOGRADER_LOG_FILE"] = ""
os.environ["AUTOGRADER_MAX_ATTEMPTS"] = "3"

import pytest

from core.autograder import AutograderClient

BASE_URL = "https://project.example.co"
APP_URL = "https://app.example.com"
ANON_KEY = "anon-key"


class FakeResponse:
    def __init__(self, status=200, data=b"", headers=None):
        self.status = status
        self.data = data
        self.headers = headers or {}


def json_response(payload, status=200):
    return FakeResponse(status, json.dumps(payload).encode("utf-8"), {"content-type": "application/json"})


class FakeTransport:
    """Records every request and answers from routes registered by the test.

    A route matches on method, URL path and a subset of the decoded query
    parameters. Unmatched requests get a 404.
    """

    def __init__(self):
        self.routes = []
        self.requests = []

    def add(self, method, path, response, **params):
        self.routes.append((method, path, params, response))
        return self

    def __call__(self, url, method="GET", body=None, headers=None, timeout=None, **kwargs):
        parts = urlsplit(url)
        query = dict(parse_qsl(parts.query, keep_blank_values=True))
        self.requests.append({
            "url": url,
            "method": method,
            "path": parts.path,
            "query": query,
            "headers": dict(headers or {}),
            "body": json.loads(body) if body else None,
        })
        for route_method, route_path, params, response in self.routes:
            if route_method != method or route_path != parts.path:
                continue
            if all(query.get(k) == v for k, v in params.items()):
                if isinstance(response, Exception):
                    raise response
                return response
        return FakeResponse(404, b"")

    def paths(self):
        return [r["path"] for r in self.requests]


# --- Row builders (shaped like the backend's JSON) ---

def assignment_row(assignment_id, class_id="cls_1", required_files=("A.java", "B.java"), name=None):
    return {
        "id": assignment_id,
        "name": name or f"Assignment {assignment_id}",
        "description": "Implement the classes.",
        "required_files": list(required_files),
        "due_date": "2026-11-01T23:59:00+00:00",
        "class_id": class_id,
    }


def class_row(class_id, assignments=(), name=None, quarter="Q1"):
    return {"id": class_id, "name": name or f"Class {class_id}", "quarter": quarter, "assignment": list(assignments)}


def profile_row(profile_id, email=None, auth_id=None):
    return {"id": profile_id, "email": email or f"{profile_id}@school.edu", "auth_id": auth_id or f"auth-{profile_id}"}


def enrollment_row(profile, klass, enrollment_type="student"):
    return {"type": enrollment_type, "profile_id": profile["id"], "class_id": klass["id"], "class": klass, "profile": profile}


def submission_row(submission_id, profile_id, assignment_id, file_name, version, created_at="2026-10-01T10:00:00Z"):
    return {
        "id": submission_id,
        "profile_id": profile_id,
        "assignment_id": assignment_id,
        "file_name": file_name,
        "version": version,
        "created_at": created_at,
    }


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport):
    return AutograderClient(BASE_URL, ANON_KEY, transport=transport, app_base_url=APP_URL)


@pytest.fixture
def no_sleep(monkeypatch):
    """Makes retry backoff instantaneous."""
    monkeypatch.setattr("utils.retry.time.sleep", lambda seconds: None)
