"""JSON export format for a whole store."""

from pydantic import TypeAdapter, ValidationError

from lingocards.domain.errors import InvalidBackupError
from lingocards.domain.models import StudyData

_adapter = TypeAdapter(StudyData)


def dump_study_data(data: StudyData) -> bytes:
    return _adapter.dump_json(data, indent=2)


def load_study_data(raw: str | bytes) -> StudyData:
    """
    Parse an export produced by dump_study_data.

    Raises:
        InvalidBackupError: If the payload is not valid JSON or misses fields.
    """
    try:
        return _adapter.validate_json(raw)
    except ValidationError as e:
        raise InvalidBackupError(f"Invalid export file: {e.error_count()} error(s)\n{e}") from e
