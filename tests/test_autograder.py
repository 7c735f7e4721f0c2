# /tests/test_autograder.py

import json

import pytest
from google.auth import exceptions as ga_exceptions

from core.models import Profile
from utils.error_handler import (AssignmentNotInClassError, ClassNotFoundError, NetworkError,
                                 NotAuthenticatedError, ProfileNotFoundError, SubmissionNotFoundError)

from conftest import (APP_URL, FakeResponse, assignment_row, class_row, enrollment_row,
                      json_response, profile_row, submission_row)

ENROLLMENT = "/rest/v1/enrollment"
SUBMISSION = "/rest/v1/submission"
CLASS = "/rest/v1/class"
PROFILE = "/rest/v1/profile"


@pytest.fixture
def roster():
    """Class cls_1 with assignment asg_1 (A.java and B.java required), two students and a teacher."""
    asg_1 = assignment_row("asg_1", required_files=("A.java", "B.java"))
    cls_1 = class_row("cls_1", [asg_1], name="AP Computer Science")
    cls_2 = class_row("cls_2", [], name="Data Structures")
    s1, s2, teacher = profile_row("s1"), profile_row("s2"), profile_row("t1")
    return {
        "asg_1": asg_1,
        "cls_1": cls_1,
        "cls_2": cls_2,
        "s1": s1,
        "s2": s2,
        "teacher": teacher,
        "student_enrollments": [enrollment_row(s1, cls_1), enrollment_row(s2, cls_1)],
        "s1_enrollments": [enrollment_row(s1, cls_1), enrollment_row(s1, cls_2)],
    }


@pytest.fixture
def submissions():
    return {
        "s1": [
            submission_row("sub_1", "s1", "asg_1", "A.java", 1),
            submission_row("sub_2", "s1", "asg_1", "B.java", 1),
            submission_row("sub_3", "s1", "asg_1", "A.java", 2),
        ],
        "s2": [
            submission_row("sub_4", "s2", "asg_1", "A.java", 1),
            submission_row("sub_5", "s2", "asg_1", "A.java", 2),
        ],
    }


# --- Profiles and classes ---

def test_get_user_profile_aggregates_classes(client, transport, roster):
    transport.add("GET", ENROLLMENT, json_response(roster["s1_enrollments"]), profile_id="eq.s1")

    profile = client.get_user_profile("s1")

    assert profile.id == "s1"
    assert [c.name for c in profile.classes] == ["AP Computer Science", "Data Structures"]
    assert profile.classes[0].assignments[0].required_files == ["A.java", "B.java"]
    assert transport.requests[0]["query"]["select"] == "*,class(*,assignment(*)),profile(*)"


def test_get_user_profile_without_enrollments_reads_profile_table(client, transport, roster):
    transport.add("GET", ENROLLMENT, json_response([]), profile_id="eq.t1")
    transport.add("GET", PROFILE, json_response([roster["teacher"]]), id="eq.t1")

    profile = client.get_user_profile("t1")

    assert profile.id == "t1"
    assert profile.classes is None


def test_get_user_profile_unknown_is_none(client, transport):
    transport.add("GET", ENROLLMENT, json_response([]))
    transport.add("GET", PROFILE, json_response([]))
    assert client.get_user_profile("ghost") is None


def test_get_user_profile_failed_request_is_none(client, transport):
    transport.add("GET", ENROLLMENT, FakeResponse(401, b""))
    assert client.get_user_profile("s1") is None
    assert transport.paths() == [ENROLLMENT]


def test_get_students_in_class_filters_by_type(client, transport, roster):
    transport.add("GET", ENROLLMENT, json_response(roster["student_enrollments"]), class_id="eq.cls_1", type="eq.student")

    students = client.get_students_in_class("cls_1")

    assert [s.id for s in students] == ["s1", "s2"]
    assert transport.requests[0]["query"]["type"] == "eq.student"


def test_get_user_profiles_in_class_includes_everyone(client, transport, roster):
    rows = roster["student_enrollments"] + [enrollment_row(roster["teacher"], roster["cls_1"], "teacher")]
    transport.add("GET", ENROLLMENT, json_response(rows), class_id="eq.cls_1")

    profiles = client.get_user_profiles_in_class("cls_1")

    assert [p.id for p in profiles] == ["s1", "s2", "t1"]
    assert "type" not in transport.requests[0]["query"]


def test_get_class_with_assignments(client, transport, roster):
    transport.add("GET", CLASS, json_response([roster["cls_1"]]), id="eq.cls_1")

    autograder_class = client.get_class("cls_1")

    assert autograder_class.assignments[0].id == "asg_1"
    assert transport.requests[0]["query"]["select"] == "*,assignment(*)"


# --- Submissions ---

def test_get_submitted_students_returns_complete_submitters(client, transport, roster, submissions):
    transport.add("GET", CLASS, json_response([roster["cls_1"]]), id="eq.cls_1")
    transport.add("GET", ENROLLMENT, json_response(roster["student_enrollments"]), class_id="eq.cls_1")
    transport.add("GET", SUBMISSION, json_response(submissions["s1"]), profile_id="eq.s1", assignment_id="eq.asg_1")
    transport.add("GET", SUBMISSION, json_response(submissions["s2"]), profile_id="eq.s2", assignment_id="eq.asg_1")

    submitted = client.get_submitted_students("cls_1", "asg_1")

    assert [p.id for p in submitted] == ["s1"]
    assert transport.paths() == [CLASS, ENROLLMENT, SUBMISSION, SUBMISSION]


def test_get_submitted_students_unknown_class(client, transport):
    transport.add("GET", CLASS, json_response([]))
    with pytest.raises(ClassNotFoundError):
        client.get_submitted_students("cls_x", "asg_1")


def test_get_submitted_students_assignment_not_in_class(client, transport, roster):
    transport.add("GET", CLASS, json_response([roster["cls_1"]]))

    with pytest.raises(AssignmentNotInClassError):
        client.get_submitted_students("cls_1", "asg_other")
    assert transport.paths() == [CLASS]


def test_get_assignment_submission_queries_exact_row(client, transport, submissions):
    transport.add("GET", SUBMISSION, json_response([submissions["s1"][2]]), version="eq.2", file_name="eq.A.java")

    submission = client.get_assignment_submission("s1", "asg_1", "v2", "A.java")

    assert submission.id == "sub_3"
    assert transport.requests[0]["query"]["profile_id"] == "eq.s1"


def test_get_submitted_versions_sorted(client, transport, submissions):
    transport.add("GET", SUBMISSION, json_response(list(reversed(submissions["s1"]))))

    versions = client.get_submitted_versions_for_assignment("s1", "asg_1")

    assert [(s.version, s.file_name) for s in versions] == [(1, "A.java"), (1, "B.java"), (2, "A.java")]


def test_latest_submitted_version(client, transport):
    rows = [
        submission_row("a", "s1", "asg_1", "Test.java", 1),
        submission_row("b", "s1", "asg_1", "Test.java", 2),
        submission_row("c", "s1", "asg_1", "Other.java", 5),
    ]
    transport.add("GET", SUBMISSION, json_response(rows[:2]), file_name="eq.Test.java")
    transport.add("GET", SUBMISSION, json_response(rows))

    assert client.get_latest_submitted_version("s1", "asg_1", "Test.java") == "v2"
    assert client.get_latest_submitted_version("s1", "asg_1") == "v5"


def test_latest_submitted_version_without_submissions_is_none(client, transport):
    transport.add("GET", SUBMISSION, json_response([]))
    assert client.get_latest_submitted_version("s1", "asg_1") is None


# --- Files ---

def route_download(transport, roster, submission, body=b"public class A {}"):
    transport.add("GET", ENROLLMENT, json_response(roster["s1_enrollments"]), profile_id="eq.s1")
    transport.add("GET", SUBMISSION, json_response([submission]), version=f"eq.{submission['version']}",
                  file_name=f"eq.{submission['file_name']}")
    transport.add("GET", f"/storage/v1/object/submissions/auth-s1/{submission['id']}", FakeResponse(200, body))


def test_download_file_resolves_auth_id_and_submission_id(client, transport, roster, submissions):
    route_download(transport, roster, submissions["s1"][2])

    content = client.download_file("s1", "asg_1", "v2", "A.java")

    assert content == "public class A {}"
    assert transport.paths()[-1] == "/storage/v1/object/submissions/auth-s1/sub_3"


def test_get_file_stream_returns_bytes(client, transport, roster, submissions):
    route_download(transport, roster, submissions["s1"][0], body=b"\x00\x01binary")

    stream = client.get_file_stream("s1", "asg_1", 1, "A.java")

    assert stream.read() == b"\x00\x01binary"


def test_download_failed_fetch_is_none(client, transport, roster, submissions):
    submission = submissions["s1"][0]
    transport.add("GET", f"/storage/v1/object/submissions/auth-s1/{submission['id']}", FakeResponse(500, b""))
    route_download(transport, roster, submission)

    assert client.download_file("s1", "asg_1", 1, "A.java") is None
    assert client.get_file_stream("s1", "asg_1", 1, "A.java") is None


def test_download_missing_submission_raises(client, transport, roster):
    transport.add("GET", ENROLLMENT, json_response(roster["s1_enrollments"]), profile_id="eq.s1")
    transport.add("GET", SUBMISSION, json_response([]))

    with pytest.raises(SubmissionNotFoundError):
        client.download_file("s1", "asg_1", 3, "A.java")


def test_download_missing_profile_raises(client, transport):
    transport.add("GET", ENROLLMENT, json_response([]))
    transport.add("GET", PROFILE, json_response([]))

    with pytest.raises(ProfileNotFoundError):
        client.get_file_stream("ghost", "asg_1", 1, "A.java")


def test_download_network_failure_is_not_a_missing_submission(client, transport, no_sleep):
    transport.add("GET", ENROLLMENT, ga_exceptions.TransportError("timed out"))

    with pytest.raises(NetworkError):
        client.download_file("s1", "asg_1", 1, "A.java")


def test_list_submission_files_uses_version_folder(client, transport):
    transport.add("POST", "/storage/v1/object/list/submissions", json_response([
        {"name": ".emptyFolderPlaceholder", "id": "p"},
        {"name": "A.java", "id": "o1"},
    ]))

    files = client.list_submission_files("s1", "asg_1", 2)

    assert [f.name for f in files] == ["A.java"]
    assert transport.requests[0]["body"]["prefix"] == "s1/asg_1/v2"


def test_list_submission_versions(client, transport):
    transport.add("POST", "/storage/v1/object/list/submissions", json_response([{"name": "v1"}, {"name": "v2"}]))
    assert [v.name for v in client.list_submission_versions("s1", "asg_1")] == ["v1", "v2"]


# --- Authentication and invites ---

def sign_in(client, transport):
    transport.add("POST", "/auth/v1/token", json_response({
        "access_token": "user-token",
        "token_type": "bearer",
        "expires_in": 3600,
        "refresh_token": "r",
        "user": {"id": "user-1", "email": "teacher@school.edu"},
    }))
    return client.authenticate_user("teacher@school.edu", "secret")


def test_authenticate_user_switches_token_for_later_calls(client, transport):
    sign_in(client, transport)
    transport.add("GET", CLASS, json_response([]))

    client.get_class("cls_1")

    assert client.authenticated_user.email == "teacher@school.edu"
    assert transport.requests[-1]["headers"]["authorization"] == "Bearer user-token"


def test_invite_teacher_requires_sign_in(client, transport):
    with pytest.raises(NotAuthenticatedError):
        client.invite_teacher("new@school.edu")
    assert transport.requests == []


def test_invite_teacher_posts_to_app(client, transport):
    sign_in(client, transport)
    transport.add("POST", "/api/auth/inviteTeacher", json_response(True))

    assert client.invite_teacher("new@school.edu") is True
    sent = transport.requests[-1]
    assert sent["url"] == f"{APP_URL}/api/auth/inviteTeacher"
    assert sent["body"] == {"currentEmail": "teacher@school.edu", "email": "new@school.edu"}
    assert sent["headers"]["authorization"] == "Bearer user-token"


def test_invite_teacher_rejected_is_false(client, transport):
    sign_in(client, transport)
    transport.add("POST", "/api/auth/inviteTeacher", json_response({"error": "forbidden"}, status=403))
    assert client.invite_teacher("new@school.edu") is False


def test_serialize_uses_wire_names(client, roster):
    profile = Profile.model_validate(roster["s1"])
    data = json.loads(client.serialize(profile, pretty=True))
    assert data["auth_id"] == "auth-s1"
    assert data["classes"] is None


def test_invite_teacher_is_not_resent_after_a_connection_failure(client, transport, no_sleep):
    sign_in(client, transport)
    transport.add("POST", "/api/auth/inviteTeacher", ga_exceptions.TransportError("read timed out"))

    with pytest.raises(NetworkError):
        client.invite_teacher("new@school.edu")
    assert transport.paths().count("/api/auth/inviteTeacher") == 1


def test_sign_in_is_not_resent_after_a_connection_failure(client, transport, no_sleep):
    transport.add("POST", "/auth/v1/token", ga_exceptions.TransportError("connection reset"))

    with pytest.raises(NetworkError):
        client.authenticate_user("teacher@school.edu", "secret")
    assert transport.paths() == ["/auth/v1/token"]
    assert client.authenticated_user is None


# --- Signed-in user's own profile ---

def test_get_profile_by_auth_id_queries_auth_id_column(client, transport, roster):
    transport.add("GET", PROFILE, json_response([roster["teacher"]]), auth_id="eq.auth-t1")

    profile = client.get_profile_by_auth_id("auth-t1")

    assert profile.id == "t1"
    assert transport.requests[0]["query"] == {"select": "*", "auth_id": "eq.auth-t1"}


def test_get_profile_by_auth_id_without_a_linked_profile_is_none(client, transport):
    transport.add("GET", PROFILE, json_response([]))
    assert client.get_profile_by_auth_id("auth-ghost") is None
