"""Pure aggregation over rows returned by the REST and storage APIs.

Nothing here performs I/O. The functions rebuild nested profiles from
enrollment join rows and answer the submission questions the autograder
asks: which version is the latest, and has a student uploaded every
required file.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from core.models import Assignment, AutograderClass, Enrollment, Profile, StoredObject, Submission
from utils.error_handler import AssignmentNotInClassError

SubmittedRecord = Union[Submission, StoredObject]


def enrollments_to_profiles(enrollments: Iterable[Enrollment]) -> List[Profile]:
    """Flattens enrollment rows into one profile per profile id.

    Profiles come back in order of first appearance. Each profile is a copy
    with its own `classes` list holding the class of every row that named
    it, in row order. The input rows are left untouched.
    """
    profiles: Dict[str, Profile] = {}
    for enrollment in enrollments:
        profile = profiles.get(enrollment.profile.id)
        if profile is None:
            profile = enrollment.profile.model_copy(update={"classes": []})
            profiles[profile.id] = profile
        profile.classes.append(enrollment.class_)
    return list(profiles.values())


def submitted_file_names(records: Iterable[SubmittedRecord]) -> Set[str]:
    """Names of the uploaded files.

    Relational submission rows carry `file_name`; bucket listing entries
    (the older storage layout) carry `name`.
    """
    names = set()
    for record in records:
        names.add(record.file_name if isinstance(record, Submission) else record.name)
    return names


def is_complete_submission(records: Iterable[SubmittedRecord], assignment: Assignment) -> bool:
    """True when every required file of `assignment` is among the submitted names.

    Names are compared exactly. Extra files and repeated versions of the same
    file do not matter.
    """
    return set(assignment.required_files) <= submitted_file_names(records)


def format_version(version: int) -> str:
    return f"v{version}"


def parse_version(version: Union[int, str]) -> int:
    """Accepts 3, "3" or "v3" and returns 3.

    Raises:
        ValueError: If the value is not a positive version number.
    """
    if isinstance(version, bool):
        raise ValueError(f"Invalid submission version: {version!r}")
    if isinstance(version, int):
        number = version
    else:
        text = str(version).strip()
        if text[:1] in ("v", "V"):
            text = text[1:]
        if not text.isdigit():
            raise ValueError(f"Invalid submission version: {version!r}")
        number = int(text)
    if number < 1:
        raise ValueError(f"Submission versions start at 1, got {version!r}")
    return number


def latest_version(submissions: Iterable[Submission], file_name: Optional[str] = None) -> Optional[str]:
    """The highest version among `submissions` formatted as ``v<N>``.

    Only submissions of `file_name` are considered when it is given.
    Returns None when nothing matches.
    """
    versions = [s.version for s in submissions if file_name is None or s.file_name == file_name]
    if not versions:
        return None
    return format_version(max(versions))


def sort_submissions(submissions: Iterable[Submission]) -> List[Submission]:
    return sorted(submissions, key=lambda s: (s.version, s.file_name))


def find_assignment(autograder_class: AutograderClass, assignment_id: str) -> Assignment:
    """Returns the assignment of `autograder_class` with id `assignment_id`.

    Raises:
        AssignmentNotInClassError: If the class has no such assignment.
    """
    for assignment in autograder_class.assignments:
        if assignment.id == assignment_id:
            return assignment
    raise AssignmentNotInClassError(assignment_id, autograder_class.id)


def filter_complete(
    profiles: Sequence[Profile],
    submissions_for: Callable[[Profile], Optional[Iterable[SubmittedRecord]]],
    assignment: Assignment,
) -> List[Profile]:
    """Keeps the profiles whose submissions for `assignment` are complete.

    `submissions_for` is called once per profile, in order; a None result
    counts as no submissions.
    """
    complete = []
    for profile in profiles:
        records = submissions_for(profile) or []
        if is_complete_submission(records, assignment):
            complete.append(profile)
    return complete
