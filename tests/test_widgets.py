import pytest

from pagestitch.controllers import AnnotationController
from pagestitch.core.annotations import PageKey
from pagestitch.ui.widgets import PageWidget, SelectionListWidget, preview_position


class TestPreviewPosition:
    def test_right_of_and_above_cursor(self):
        assert preview_position(100, 400, 1000) == (120, 350)

    def test_clamped_above_bottom_edge(self):
        assert preview_position(100, 900, 1000) == (120, 700)

    def test_horizontal_position_is_not_clamped(self):
        x, _ = preview_position(5000, 100, 1000)
        assert x == 5020


@pytest.fixture
def document(session, pdf_a):
    return session.ingest_files([("a.pdf", pdf_a)]).loaded[0]


@pytest.fixture
def page_widget(qapp, session, document):
    controller = AnnotationController(session)
    widget = PageWidget(controller, session, PageKey(document.id, 1), document.name)
    widget.set_page_pixmap(session.reader.render_page(document.id, 1, 1.0))
    yield widget
    widget.release()
    widget.deleteLater()


class TestPageWidget:
    def test_surface_matches_rendered_page(self, page_widget):
        surface = page_widget.controller.get_surface(page_widget.surface_id)

        assert (surface.width, surface.height) == (200, 300)
        assert surface.page_key == page_widget.page_key

    def test_add_button_toggles_selection(self, page_widget, session, document):
        page_widget.add_button.click()

        assert session.is_page_selected(document.id, 1)
        assert page_widget.add_button.text() == "✓ Added"

        page_widget.add_button.click()

        assert session.selected_pages == []
        assert page_widget.add_button.text() == "+ Add Page"

    def test_release_unregisters_surface(self, qapp, session, document):
        controller = AnnotationController(session)
        widget = PageWidget(controller, session, PageKey(document.id, 2), document.name)
        widget.set_page_pixmap(session.reader.render_page(document.id, 2, 1.0))

        widget.release()

        assert controller.get_surface(widget.surface_id) is None


class TestSelectionListWidget:
    def test_items_follow_session_order(self, qapp, session, document):
        session.add_page(document.id, 2)
        session.add_page(document.id, 1)

        widget = SelectionListWidget(session)

        assert [widget.item(i).text() for i in range(widget.count())] == [
            "1. a.pdf - p.2",
            "2. a.pdf - p.1",
        ]

    def test_remove_current(self, qapp, session, document):
        session.add_page(document.id, 1)
        keep = session.add_page(document.id, 2)
        widget = SelectionListWidget(session)

        widget.setCurrentRow(0)
        assert widget.remove_current()

        assert session.selected_pages == [keep]
        assert widget.count() == 1

    def test_remove_without_current_row(self, qapp, session):
        widget = SelectionListWidget(session)
        assert not widget.remove_current()
