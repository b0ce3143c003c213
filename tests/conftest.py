import pytest

from inksync.models import RecognizedLine, Stroke, YBounds
from inksync.store import InMemoryBlockStore


@pytest.fixture
def store():
    return InMemoryBlockStore()


@pytest.fixture
def page_id():
    return "Smartpen Data/B3017/P42"


@pytest.fixture
def make_stroke():
    def factory(start_time, top, bottom):
        return Stroke.from_points(start_time, [(10.0, top), (20.0, bottom)])
    return factory


@pytest.fixture
def make_line():
    def factory(text, top, bottom, indent_level=0, **kwargs):
        return RecognizedLine(
            text=text,
            indent_level=indent_level,
            y_bounds=YBounds(min_y=top, max_y=bottom),
            **kwargs
        )
    return factory
