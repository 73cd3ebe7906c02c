"""Tests for ImageRepository and PresetRepository against in-memory SQLite."""

import pytest

from seotagger.ai.schema import AnalysisResult
from seotagger.models.entities import Image, ImageStatus
from seotagger.repository.image_repo import InvalidTransitionError

pytestmark = [pytest.mark.fast]


def _image(session_id, name="a.png"):
    return Image(
        session_id=session_id,
        filename=name,
        original_name=name,
        file_path=f"/tmp/{name}",
        file_size=10,
        mime_type="image/png",
    )


def test_create_session_default_name(image_repo):
    session = image_repo.create_session()
    assert session.name.startswith("Session ")
    assert image_repo.get_session(session.id).name == session.name


def test_create_session_explicit_id_and_name(image_repo):
    session = image_repo.create_session("  Holiday  ", session_id="fixed-id")
    assert session.id == "fixed-id"
    assert image_repo.get_session("fixed-id").name == "Holiday"


def test_create_image_forces_pending_and_lists_in_order(image_repo):
    session = image_repo.create_session("s")
    first = _image(session.id, "1.png")
    first.status = ImageStatus.completed
    image_repo.create_image(first)
    image_repo.create_image(_image(session.id, "2.png"))

    images = image_repo.get_images(session.id)
    assert [i.original_name for i in images] == ["1.png", "2.png"]
    assert all(i.status == ImageStatus.pending for i in images)


def test_forward_lifecycle_to_completed(image_repo):
    session = image_repo.create_session("s")
    image = image_repo.create_image(_image(session.id))
    image_repo.mark_processing(image.id)
    result = AnalysisResult(alt_text="Alt text", title="A title", keywords=["a", "b", "c", "d", "e"])
    image_repo.mark_completed(image.id, result)

    stored = image_repo.get_image(image.id)
    assert stored.status == ImageStatus.completed
    assert stored.metadata_dict() == result.metadata()


def test_pending_may_fail_directly(image_repo):
    session = image_repo.create_session("s")
    image = image_repo.create_image(_image(session.id))
    image_repo.mark_error(image.id, "file vanished")
    stored = image_repo.get_image(image.id)
    assert stored.status == ImageStatus.error
    assert stored.error_message == "file vanished"
    assert stored.metadata_dict() is None


@pytest.mark.parametrize(
    "path, target",
    [
        ([], ImageStatus.completed),
        ([ImageStatus.processing, ImageStatus.completed], ImageStatus.processing),
        ([ImageStatus.error], ImageStatus.processing),
        ([ImageStatus.processing, ImageStatus.error], ImageStatus.completed),
        ([ImageStatus.processing], ImageStatus.pending),
    ],
)
def test_backward_or_skipping_transitions_rejected(image_repo, path, target):
    session = image_repo.create_session("s")
    image = image_repo.create_image(_image(session.id))
    for status in path:
        image_repo.update_image_status(image.id, status)
    with pytest.raises(InvalidTransitionError):
        image_repo.update_image_status(image.id, target)


def test_unknown_image_raises_lookup_error(image_repo):
    with pytest.raises(LookupError):
        image_repo.mark_processing("missing")


def test_default_presets_seeded(preset_repo):
    presets = preset_repo.list_presets()
    assert [p.id for p in presets] == ["adobe-stock", "generic-seo", "shutterstock"]
    generic = preset_repo.get("generic-seo")
    assert (generic.title_max_length, generic.keywords_min, generic.keywords_max) == (60, 10, 20)
    assert preset_repo.get("nope") is None


@pytest.mark.parametrize("final", [ImageStatus.completed, ImageStatus.error])
def test_terminal_image_cannot_move_again(image_repo, final):
    session = image_repo.create_session("s")
    image = image_repo.create_image(_image(session.id))
    image_repo.update_image_status(image.id, ImageStatus.processing)
    image_repo.update_image_status(image.id, final)
    with pytest.raises(InvalidTransitionError, match=f"already {final.value}"):
        image_repo.update_image_status(image.id, ImageStatus.error)
    assert image_repo.get_image(image.id).status == final
