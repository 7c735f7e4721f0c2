"""Client for the Autograder backend: profiles, classes, submissions and files."""

import io
from typing import List, Optional, Union

from pydantic import BaseModel

import auth
import config
from api_clients import Transport, build_transport, is_success
from core import aggregation
from core.models import AuthenticationResponse, AutograderClass, Enrollment, InviteTeacherRequest, Profile, StoredObject, Submission
from core.query_builder import RestQueryBuilder, expand
from services.rest_api import RestService
from services.storage_api import StorageService
from utils.logger import get_logger
from utils.error_handler import (ClassNotFoundError, NotAuthenticatedError,
                                 ProfileNotFoundError, SubmissionNotFoundError)

logger = get_logger()

# Projections used against the enrollment and class tables
CLASS_WITH_ASSIGNMENTS = expand("class", "*", expand("assignment", "*"))
ENROLLMENT_PROJECTION = ("*", CLASS_WITH_ASSIGNMENTS, expand("profile", "*"))
CLASS_PROJECTION = ("*", expand("assignment", "*"))

Version = Union[int, str]


class AutograderClient:
    """Talks to the Autograder backend on behalf of one user.

    The client starts out with the anonymous key, which only reaches public
    rows. `authenticate_user` switches it over to the user's access token.
    Every operation is synchronous and issues its requests one after
    another. Instances are not thread-safe.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: Optional[str],
        transport: Optional[Transport] = None,
        app_base_url: str = config.AUTOGRADER_APP_URL,
        timeout: float = config.REQUEST_TIMEOUT,
    ):
        """Initializes the AutograderClient.

        Args:
            base_url: Base URL of the backend.
            anon_key: The project's anonymous key.
            transport: The HTTP transport; a new requests-backed one is built when omitted.
            app_base_url: Base URL of the autograder web app.
            timeout: Per-request timeout in seconds.
        """
        self.session = auth.SessionCredentials(anon_key)
        self.rest = RestService(base_url, self.session, transport or build_transport(), timeout=timeout)
        self.storage = StorageService(self.rest)
        self.app_base_url = app_base_url.rstrip("/")
        logger.debug(f"AutograderClient initialized for {self.rest.base_url}.")

    @property
    def authenticated_user(self):
        return self.session.current_identity()

    # --- Authentication ---

    def authenticate_user(self, email: str, password: str) -> AuthenticationResponse:
        """Signs in and uses the returned access token for all later calls.

        Other methods work without signing in, but then only reach rows the
        access policies expose publicly.

        Raises:
            AuthenticationError: If the credentials are rejected.
            NetworkError: If the request could not be sent.
        """
        return auth.sign_in(self.rest, self.session, email, password)

    def invite_teacher(self, email: str) -> bool:
        """Asks the web app to email an invitation to a new teacher.

        Returns:
            Whether the invitation was accepted by the app.

        Raises:
            NotAuthenticatedError: If no user has signed in.
        """
        identity = self.session.current_identity()
        if identity is None or not identity.email:
            raise NotAuthenticatedError("Sign in before inviting a teacher.")

        body = InviteTeacherRequest(current_email=identity.email, email=email)
        status, payload = self.rest.insert(
            config.INVITE_TEACHER_PATH, body.model_dump(by_alias=True), base_url=self.app_base_url
        )
        if not is_success(status):
            logger.warning(f"Invitation for {email} was rejected with status {status}.")
            return False
        logger.info(f"Invitation for {email} sent: {payload!r}")
        return payload is True

    # --- Profiles and classes ---

    def get_user_profile(self, profile_id: str) -> Optional[Profile]:
        """Gets a profile together with its classes and their assignments.

        A profile without enrollments is read from the profile table and
        comes back with `classes` left as None.

        Returns:
            The profile, or None if it does not exist or the request failed.
        """
        builder = RestQueryBuilder.from_table("enrollment") \
            .select(*ENROLLMENT_PROJECTION) \
            .equals("profile_id", profile_id)
        enrollments = self.rest.execute_as(Enrollment, builder)
        if enrollments is None:
            return None
        if enrollments:
            return aggregation.enrollments_to_profiles(enrollments)[0]

        profiles = self.rest.query_as(Profile, "profile", {"id": profile_id}, select=("*",))
        return profiles[0] if profiles else None

    def get_profile_by_auth_id(self, auth_id: str) -> Optional[Profile]:
        """The profile row linked to an auth user id, without its classes.

        A signed-in user's id is an auth id, not a profile id; use this to
        find the profile id to pass to the other methods.
        """
        profiles = self.rest.query_as(Profile, "profile", {"auth_id": auth_id}, select=("*",))
        return profiles[0] if profiles else None

    def get_user_profiles_in_class(self, class_id: str, students_only: bool = False) -> List[Profile]:
        """Gets everyone enrolled in a class, each with all the classes they share with it.

        Returns:
            The profiles, or an empty list if the request failed.
        """
        builder = RestQueryBuilder.from_table("enrollment") \
            .select(*ENROLLMENT_PROJECTION) \
            .equals("class_id", class_id)
        if students_only:
            builder.equals("type", "student")

        enrollments = self.rest.execute_as(Enrollment, builder)
        profiles = aggregation.enrollments_to_profiles(enrollments or [])
        logger.info(f"Found {len(profiles)} {'students' if students_only else 'members'} in class {class_id}.")
        return profiles

    def get_students_in_class(self, class_id: str) -> List[Profile]:
        """Like `get_user_profiles_in_class`, without teachers."""
        return self.get_user_profiles_in_class(class_id, students_only=True)

    def get_class(self, class_id: str) -> Optional[AutograderClass]:
        classes = self.rest.query_as(AutograderClass, "class", {"id": class_id}, select=CLASS_PROJECTION)
        return classes[0] if classes else None

    # --- Submissions ---

    def get_assignment_submissions(self, profile_id: str, assignment_id: str) -> Optional[List[Submission]]:
        """Every file version a profile submitted for an assignment.

        Returns:
            The submission rows, or None if the request failed.
        """
        builder = RestQueryBuilder.from_table("submission") \
            .select("*") \
            .equals("assignment_id", assignment_id) \
            .equals("profile_id", profile_id)
        return self.rest.execute_as(Submission, builder)

    def get_assignment_submission(self, profile_id: str, assignment_id: str, version: Version, file_name: str) -> Optional[Submission]:
        """The submission row for one file at one version, or None."""
        builder = RestQueryBuilder.from_table("submission") \
            .select("*") \
            .equals("assignment_id", assignment_id) \
            .equals("profile_id", profile_id) \
            .equals("version", aggregation.parse_version(version)) \
            .equals("file_name", file_name)
        submissions = self.rest.execute_as(Submission, builder)
        return submissions[0] if submissions else None

    def get_submitted_versions_for_assignment(self, profile_id: str, assignment_id: str) -> List[Submission]:
        """Submission rows ordered by version, then file name."""
        return aggregation.sort_submissions(self.get_assignment_submissions(profile_id, assignment_id) or [])

    def get_latest_submitted_version(self, profile_id: str, assignment_id: str, file_name: Optional[str] = None) -> Optional[str]:
        """The highest version (``v<N>``) submitted for an assignment.

        Args:
            profile_id: The id of the student's profile.
            assignment_id: The id of the assignment.
            file_name: Restricts the answer to versions of this file.

        Returns:
            The version, or None if there are no matching submissions or the
            request failed.
        """
        builder = RestQueryBuilder.from_table("submission") \
            .select("*") \
            .equals("assignment_id", assignment_id) \
            .equals("profile_id", profile_id)
        if file_name is not None:
            builder.equals("file_name", file_name)
        submissions = self.rest.execute_as(Submission, builder)
        if submissions is None:
            return None
        return aggregation.latest_version(submissions, file_name)

    def get_submitted_students(self, class_id: str, assignment_id: str) -> List[Profile]:
        """Students of a class who submitted every required file of an assignment.

        Makes one submissions request per student, sequentially.

        Raises:
            ClassNotFoundError: If the class does not exist.
            AssignmentNotInClassError: If the assignment is not part of the class.
        """
        autograder_class = self.get_class(class_id)
        if autograder_class is None:
            raise ClassNotFoundError(f"Class '{class_id}' does not exist.")
        assignment = aggregation.find_assignment(autograder_class, assignment_id)

        students = self.get_students_in_class(class_id)
        submitted = aggregation.filter_complete(
            students,
            lambda profile: self.get_assignment_submissions(profile.id, assignment_id),
            assignment,
        )
        logger.info(f"{len(submitted)} of {len(students)} students submitted assignment {assignment_id}.")
        return submitted

    # --- Storage listings ---

    def list_submission_versions(self, profile_id: str, assignment_id: str) -> List[StoredObject]:
        """Version folders in the submissions bucket for a student and assignment."""
        return self.storage.list_versions(profile_id, assignment_id)

    def list_submission_files(self, profile_id: str, assignment_id: str, version: Version) -> List[StoredObject]:
        """Files inside one version folder of the submissions bucket."""
        folder = aggregation.format_version(aggregation.parse_version(version))
        return self.storage.list_files(profile_id, assignment_id, folder)

    # --- Files ---

    def _submission_object_path(self, profile_id: str, assignment_id: str, version: Version, file_name: str) -> str:
        profile = self.get_user_profile(profile_id)
        if profile is None or not profile.auth_id:
            raise ProfileNotFoundError(f"Profile '{profile_id}' does not exist.")

        submission = self.get_assignment_submission(profile_id, assignment_id, version, file_name)
        if submission is None:
            raise SubmissionNotFoundError(
                f"File '{file_name}' (version {version}) was not submitted by '{profile_id}' for assignment '{assignment_id}'."
            )
        return self.storage.object_path(profile.auth_id, submission.id)

    def get_file_stream(self, profile_id: str, assignment_id: str, version: Version, file_name: str) -> Optional[io.BytesIO]:
        """Downloads a submitted file as a byte stream.

        Returns:
            The contents, or None if the download request failed.

        Raises:
            ProfileNotFoundError: If the profile does not exist.
            SubmissionNotFoundError: If no such file version was submitted.
            NetworkError: If a request could not be sent.
        """
        data = self.storage.fetch_bytes(self._submission_object_path(profile_id, assignment_id, version, file_name))
        return io.BytesIO(data) if data is not None else None

    def download_file(self, profile_id: str, assignment_id: str, version: Version, file_name: str) -> Optional[str]:
        """Downloads a submitted file as text. Raises like `get_file_stream`."""
        return self.storage.fetch_text(self._submission_object_path(profile_id, assignment_id, version, file_name))

    # --- Helpers ---

    @staticmethod
    def serialize(model: BaseModel, pretty: bool = False) -> str:
        """JSON text of a model, using wire names."""
        return model.model_dump_json(by_alias=True, indent=2 if pretty else None)
