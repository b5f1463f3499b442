"""Tests for pdfcalc.registry."""

import pytest

from pdfcalc.registry import Registrable, Registry, UnknownTypeError


class _Shape(Registrable):
    pass


@pytest.fixture
def shapes():
    """Fresh registry with two shapes."""
    registry = Registry("shape")

    @registry.register
    class Square(_Shape):
        type_name = "square"

        def __init__(self, side=1.0):
            self.side = side

    @registry.register
    class Circle(_Shape):
        type_name = "circle"

    return registry


class TestRegistry:
    """Tests for Registry."""

    def test_types_are_sorted(self, shapes):
        assert shapes.types() == ("circle", "square")

    def test_contains(self, shapes):
        assert "square" in shapes
        assert "triangle" not in shapes

    def test_create_with_parameters(self, shapes):
        square = shapes.create("square", side=2.0)
        assert square.type_name == "square"
        assert square.side == 2.0

    def test_unknown_tag_raises(self, shapes):
        with pytest.raises(UnknownTypeError, match="Available types: circle, square"):
            shapes.create("triangle")

    def test_unknown_type_error_is_value_error(self):
        assert issubclass(UnknownTypeError, ValueError)

    def test_resolve_tag_and_instance(self, shapes):
        square = shapes.create("square")
        assert shapes.resolve(square) is square
        assert shapes.resolve("circle").type_name == "circle"

    def test_resolve_rejects_foreign_objects(self, shapes):
        with pytest.raises(TypeError):
            shapes.resolve(3.0)

        class Triangle(_Shape):
            type_name = "triangle"

        with pytest.raises(TypeError):
            shapes.resolve(Triangle())

    def test_duplicate_tag_raises(self, shapes):
        class OtherSquare(_Shape):
            type_name = "square"

        with pytest.raises(ValueError, match="already registered"):
            shapes.register(OtherSquare)

    def test_reregistering_same_class_is_allowed(self, shapes):
        square_cls = type(shapes.create("square"))
        assert shapes.register(square_cls) is square_cls

    def test_missing_type_name_raises(self, shapes):
        class Nameless(_Shape):
            pass

        with pytest.raises(ValueError, match="type_name"):
            shapes.register(Nameless)


class TestRegistrable:
    """Tests for the Registrable mixin."""

    def test_create_returns_default_instance(self, shapes):
        square = shapes.create("square", side=5.0)
        fresh = square.create()
        assert type(fresh) is type(square)
        assert fresh.side == 1.0

    def test_clone_copies_parameters(self, shapes):
        square = shapes.create("square", side=5.0)
        clone = square.clone()
        assert clone is not square
        assert clone.side == 5.0
