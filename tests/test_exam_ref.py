import uuid

import pytest

from quizroom.errors import InvalidInput
from quizroom.services.exam_ref import resolve_exam_ref


def test_uuid_resolves_to_id():
    exam_id = uuid.uuid4()
    ref = resolve_exam_ref(f"  {exam_id}  ")
    assert ref.kind == "id"
    assert ref.value == str(exam_id)


def test_anything_else_is_a_code():
    ref = resolve_exam_ref(" MATH101 ")
    assert ref.kind == "code"
    assert ref.value == "MATH101"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_blank_identifier_rejected(raw):
    with pytest.raises(InvalidInput):
        resolve_exam_ref(raw)
