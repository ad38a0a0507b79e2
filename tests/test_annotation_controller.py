import pytest

from pagestitch.controllers import (
    DEFAULT_TEXT_SIZE_PX,
    AnnotationController,
    EditorState,
    PageSurface,
    PointerButton,
    PointerEvent,
    PointerPhase,
    PointerType,
)
from pagestitch.core.annotations import DEFAULT_STROKE_COLOR, AnnotationKind, PageKey
from pagestitch.core.session import Tool

PAGE = PageKey("doc_a", 1)
SURFACE = "viewer:doc_a-1"


@pytest.fixture
def controller(qapp, session):
    controller = AnnotationController(session)
    controller.register_surface(SURFACE, PageSurface(PAGE, 200, 100))
    return controller


@pytest.fixture
def changes(session):
    """Number of committed session changes, i.e. persistence triggers."""
    calls = []
    session.add_change_listener(lambda s: calls.append(s))
    return calls


def alpha_at(controller, x, y):
    return controller.get_surface(SURFACE).image.pixelColor(x, y).alpha()


def draw(controller, *points):
    controller.handle_pointer_down(SURFACE, points[0])
    for point in points[1:]:
        controller.handle_pointer_move(SURFACE, point)
    controller.handle_pointer_up(SURFACE, points[-1])


class TestTools:
    def test_no_tool_is_inert(self, controller, session):
        draw(controller, (10, 10), (50, 50))

        assert controller.state == EditorState.IDLE
        assert session.annotations.annotation_count() == 0

    def test_toggle_tool(self, controller, session):
        assert controller.toggle_tool(Tool.DRAW) == Tool.DRAW
        assert controller.toggle_tool(Tool.ERASE) == Tool.ERASE
        assert controller.toggle_tool(Tool.ERASE) == Tool.NONE
        assert session.preferences.tool == Tool.NONE

    def test_tool_change_persists(self, controller, changes):
        controller.set_tool(Tool.DRAW)
        controller.set_color("#00ff00")
        assert len(changes) == 2

    def test_color_change_keeps_existing_annotations(self, controller, session):
        controller.set_tool(Tool.DRAW)
        draw(controller, (10, 10), (20, 20))
        controller.set_color("#0000ff")
        draw(controller, (30, 30), (40, 40))

        colors = [a.color for a in session.annotations.get_page_annotations(PAGE)]
        assert colors == [DEFAULT_STROKE_COLOR, "#0000ff"]


class TestDraw:
    def test_stroke_is_committed_normalized(self, controller, session, changes):
        controller.set_tool(Tool.DRAW)
        changes.clear()

        controller.handle_pointer_down(SURFACE, (20, 10))
        assert controller.state == EditorState.DRAGGING
        controller.handle_pointer_move(SURFACE, (100, 50))
        controller.handle_pointer_up(SURFACE, (100, 50))

        assert controller.state == EditorState.IDLE
        stroke = session.annotations.get_page_annotations(PAGE)[0]
        assert stroke.kind == AnnotationKind.STROKE
        assert stroke.points == [(0.1, 0.1), (0.5, 0.5)]
        assert stroke.color == DEFAULT_STROKE_COLOR
        assert len(changes) == 1

    def test_live_segment_is_painted(self, controller):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer_down(SURFACE, (10, 50))
        controller.handle_pointer_move(SURFACE, (190, 50))

        assert alpha_at(controller, 100, 50) > 0
        assert alpha_at(controller, 100, 10) == 0

    def test_leave_commits_stroke(self, controller, session):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer_down(SURFACE, (20, 20))
        controller.handle_pointer_move(SURFACE, (40, 40))
        controller.handle_pointer_leave(SURFACE)

        assert controller.state == EditorState.IDLE
        assert session.annotations.annotation_count() == 1

    def test_tap_commits_single_point(self, controller, session):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer_down(SURFACE, (100, 50))
        controller.handle_pointer_up(SURFACE, (100, 50))

        assert session.annotations.get_page_annotations(PAGE)[0].points == [(0.5, 0.5)]

    def test_release_point_extends_stroke(self, controller, session):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer_down(SURFACE, (20, 10))
        controller.handle_pointer_move(SURFACE, (60, 30))
        controller.handle_pointer_up(SURFACE, (100, 50))

        points = session.annotations.get_page_annotations(PAGE)[0].points
        assert points == [(0.1, 0.1), (0.3, 0.3), (0.5, 0.5)]
        assert alpha_at(controller, 80, 40) > 0

    def test_moves_without_drag_are_ignored(self, controller, session):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer_move(SURFACE, (40, 40))
        controller.handle_pointer_up(SURFACE, (40, 40))

        assert session.annotations.annotation_count() == 0

    def test_secondary_mouse_button_is_ignored(self, controller, session):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer_down(SURFACE, (20, 20), PointerType.MOUSE, PointerButton.SECONDARY)

        assert controller.state == EditorState.IDLE

    def test_touch_counts_as_primary(self, controller, session):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer(SURFACE, PointerEvent(
            PointerPhase.DOWN, (20, 20), PointerType.TOUCH, PointerButton.NONE))
        controller.handle_pointer(SURFACE, PointerEvent(
            PointerPhase.MOVE, (40, 20), PointerType.TOUCH, PointerButton.NONE))
        controller.handle_pointer(SURFACE, PointerEvent(PointerPhase.UP, (40, 20), PointerType.TOUCH))

        assert session.annotations.get_page_annotations(PAGE)[0].points == [(0.1, 0.2), (0.2, 0.2)]

    def test_switching_tool_mid_stroke_commits_it(self, controller, session):
        controller.set_tool(Tool.DRAW)
        controller.handle_pointer_down(SURFACE, (20, 20))
        controller.handle_pointer_move(SURFACE, (40, 40))
        controller.set_tool(Tool.ERASE)

        assert controller.state == EditorState.IDLE
        assert session.annotations.annotation_count() == 1


class TestErase:
    def test_erase_on_down(self, controller, session, changes):
        controller.set_tool(Tool.DRAW)
        draw(controller, (20, 50), (180, 50))
        controller.set_tool(Tool.ERASE)
        changes.clear()

        controller.handle_pointer_down(SURFACE, (100, 55))

        assert controller.state == EditorState.DRAGGING
        assert session.annotations.annotation_count() == 0
        assert alpha_at(controller, 100, 50) == 0
        assert len(changes) == 1

    def test_erase_while_dragging(self, controller, session):
        controller.set_tool(Tool.DRAW)
        draw(controller, (20, 20), (60, 20))
        draw(controller, (20, 80), (60, 80))
        controller.set_tool(Tool.ERASE)

        controller.handle_pointer_down(SURFACE, (150, 50))
        assert session.annotations.annotation_count() == 2

        controller.handle_pointer_move(SURFACE, (40, 75))
        controller.handle_pointer_up(SURFACE, (40, 75))

        remaining = session.annotations.get_page_annotations(PAGE)
        assert [s.points[0] for s in remaining] == [(0.1, 0.2)]
        # The surviving stroke is repainted
        assert alpha_at(controller, 40, 20) > 0
        assert alpha_at(controller, 40, 80) == 0

    def test_miss_does_not_persist(self, controller, changes):
        controller.set_tool(Tool.DRAW)
        draw(controller, (20, 20), (60, 20))
        controller.set_tool(Tool.ERASE)
        changes.clear()

        controller.handle_pointer_down(SURFACE, (150, 90))
        assert changes == []


class TestText:
    def test_text_placement(self, controller, session):
        requests = []
        controller.text_input_requested.connect(lambda *args: requests.append(args))
        controller.set_tool(Tool.TEXT)

        controller.handle_pointer_down(SURFACE, (50, 20))

        assert controller.state == EditorState.IDLE
        assert requests == [(SURFACE, 50.0, 20.0)]

        assert controller.commit_text("  hello  ")
        label = session.annotations.get_page_annotations(PAGE)[0]
        assert label.kind == AnnotationKind.TEXT
        assert (label.x, label.y) == pytest.approx((0.25, 0.2))
        assert label.font_size_fraction == pytest.approx(DEFAULT_TEXT_SIZE_PX / 100)
        assert label.text == "hello"
        assert label.color == session.preferences.color

    def test_blank_text_is_discarded(self, controller, session):
        controller.set_tool(Tool.TEXT)
        controller.handle_pointer_down(SURFACE, (50, 20))

        assert not controller.commit_text("   ")
        assert session.annotations.annotation_count() == 0
        assert controller.pending_text is None

    def test_cancel_text(self, controller, session):
        closed = []
        controller.text_input_closed.connect(closed.append)
        controller.set_tool(Tool.TEXT)
        controller.handle_pointer_down(SURFACE, (50, 20))

        controller.cancel_text()

        assert closed == [SURFACE]
        assert not controller.commit_text("late")
        assert session.annotations.annotation_count() == 0


class TestCommands:
    def test_clear_page(self, controller, session, changes):
        controller.set_tool(Tool.DRAW)
        draw(controller, (20, 50), (180, 50))
        changes.clear()

        assert controller.clear_page(PAGE)
        assert not session.annotations.has_annotations(PAGE)
        assert alpha_at(controller, 100, 50) == 0
        assert len(changes) == 1

    def test_clear_document(self, controller, session):
        session.annotations.append_stroke(PageKey("doc_a", 2), [(0.1, 0.1)], "#000000")
        session.annotations.append_stroke(PageKey("doc_b", 1), [(0.1, 0.1)], "#000000")

        assert controller.clear_document("doc_a") == 1
        assert session.annotations.page_keys() == [PageKey("doc_b", 1)]

    def test_registered_surface_shows_existing_annotations(self, qapp, session):
        session.annotations.append_stroke(PAGE, [(0.0, 0.5), (1.0, 0.5)], "#000000")
        controller = AnnotationController(session)
        controller.register_surface(SURFACE, PageSurface(PAGE, 200, 100))

        assert alpha_at(controller, 100, 50) > 0

    def test_resize_repaints_at_new_scale(self, controller, session):
        session.annotations.append_stroke(PAGE, [(0.0, 0.5), (1.0, 0.5)], "#000000")
        controller.resize_surface(SURFACE, 400, 200)

        assert alpha_at(controller, 300, 100) > 0
        assert alpha_at(controller, 300, 50) == 0
