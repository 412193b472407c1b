"""Test that the project setup is working correctly."""

import shareholder_tracker


def test_version() -> None:
    """Test that version is defined."""
    assert shareholder_tracker.__version__ == "0.1.0"


def test_import_modules() -> None:
    """Test that all submodules can be imported."""
    from shareholder_tracker import analytics
    from shareholder_tracker import positions
    from shareholder_tracker import service
    from shareholder_tracker import storage

    # Just verify imports work
    assert analytics is not None
    assert positions is not None
    assert service is not None
    assert storage is not None
