from relpub.core.errors import ErrorCode
from relpub.release.errors import ReleaseError


def test_exit_codes_are_contract() -> None:
    assert int(ErrorCode.OK) == 0
    assert int(ErrorCode.ABORTED) == 2
    assert str(ErrorCode.ABORTED) == "aborted"


def test_release_error_defaults() -> None:
    error = ReleaseError(kind="integrity", message="SHA256 mismatch for a (v1.0.0)")
    assert error.hint is None
    assert error == ReleaseError("integrity", "SHA256 mismatch for a (v1.0.0)")
