# tests/test_navigation.py
from core.navigation import OverlayKind, View, ViewRouter


def test_starts_at_dashboard():
    router = ViewRouter()
    assert router.current == View.DASHBOARD
    assert router.overlay is None
    assert router.back() is False


def test_navigate_replaces_stack():
    """Test that top-level navigation keeps only the root beneath the new screen."""
    router = ViewRouter()
    router.navigate(View.LIBRARY)
    router.navigate(View.LOANS)
    assert router.stack == [View.DASHBOARD, View.LOANS]
    router.navigate(View.DASHBOARD)
    assert router.stack == [View.DASHBOARD]


def test_push_and_back():
    router = ViewRouter()
    router.navigate(View.SETTINGS)
    router.push(View.LOCATIONS)
    router.push(View.LOCATIONS)
    assert router.stack == [View.DASHBOARD, View.SETTINGS, View.LOCATIONS]
    assert router.back() is True
    assert router.current == View.SETTINGS


def test_back_closes_overlay_first():
    """Test that back dismisses an open detail overlay before leaving the screen."""
    router = ViewRouter()
    router.navigate(View.LIBRARY)
    router.open_overlay(OverlayKind.BOOK, 'book-1')
    assert router.overlay.entity_id == 'book-1'
    assert router.back() is True
    assert router.overlay is None
    assert router.current == View.LIBRARY


def test_navigation_clears_overlay():
    router = ViewRouter()
    router.open_overlay('loan', 'loan-1')
    assert router.overlay.kind == OverlayKind.LOAN
    router.navigate(View.PROFILE)
    assert router.overlay is None
    router.open_overlay(OverlayKind.USER, 'u-1')
    router.reset()
    assert router.stack == [View.DASHBOARD]
    assert router.overlay is None
