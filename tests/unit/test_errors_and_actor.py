"""Unit tests for the error taxonomy and actor parsing."""

import pytest

from ottalika.services.actor import Actor, Role, require_actor
from ottalika.services.errors import (
    AlreadyVerified,
    AppError,
    DuplicatePayment,
    InsufficientAmount,
    MissingActor,
    NotFound,
    PreconditionFailed,
    StoreFailure,
    ValidationError,
)


class TestErrorTaxonomy:
    """Codes, HTTP statuses and envelope rendering."""

    @pytest.mark.parametrize(
        "error_cls, http_status",
        [
            (ValidationError, 422),
            (InsufficientAmount, 400),
            (MissingActor, 401),
            (NotFound, 404),
            (DuplicatePayment, 409),
            (AlreadyVerified, 409),
            (StoreFailure, 500),
        ],
    )
    def test_http_status(self, error_cls, http_status):
        error = error_cls("boom") if error_cls is not MissingActor else error_cls()
        assert error.http_status == http_status
        assert isinstance(error, AppError)

    def test_precondition_family(self):
        assert issubclass(DuplicatePayment, PreconditionFailed)
        assert issubclass(AlreadyVerified, PreconditionFailed)
        assert issubclass(InsufficientAmount, ValidationError)

    def test_to_dict_hides_detail_by_default(self):
        error = StoreFailure("Failed to record payment", detail="disk I/O error")
        assert error.to_dict() == {
            "success": False,
            "code": "store_failure",
            "message": "Failed to record payment",
        }

    def test_to_dict_includes_detail_when_requested(self):
        error = StoreFailure("Failed to record payment", detail="disk I/O error")
        assert error.to_dict(include_detail=True)["detail"] == "disk I/O error"


class TestActor:
    """Actor construction from raw header values."""

    def test_from_values(self):
        actor = Actor.from_values("42", "Manager")
        assert actor == Actor(actor_id=42, role=Role.MANAGER)

    @pytest.mark.parametrize("actor_id, role", [(None, "renter"), ("", "renter"), ("7", None), ("7", "")])
    def test_missing_values(self, actor_id, role):
        with pytest.raises(MissingActor):
            Actor.from_values(actor_id, role)

    def test_invalid_id(self):
        with pytest.raises(ValidationError):
            Actor.from_values("abc", "renter")

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            Actor.from_values("7", "janitor")

    def test_require_actor(self):
        actor = Actor(1, Role.OWNER)
        assert require_actor(actor) is actor
        with pytest.raises(MissingActor):
            require_actor(None)
