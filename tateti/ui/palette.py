from PySide6.QtWidgets import QApplication
from PySide6.QtCore import Qt
from PySide6.QtGui import QPalette, QColor

# -----------------------------------------------------------------------------
# COLOR CONSTANTS
# -----------------------------------------------------------------------------

WINDOW_COLOR = QColor(53, 53, 53)
BASE_COLOR = QColor(35, 35, 35)
BUTTON_COLOR = QColor(66, 66, 66)
ACCENT_COLOR = QColor(42, 130, 218)
PLACEHOLDER_TEXT_COLOR = QColor(160, 160, 160)
DISABLED_COLOR = QColor(127, 127, 127)

# role -> color for the active group
ACTIVE_ROLES = {
    QPalette.Window: WINDOW_COLOR,
    QPalette.WindowText: Qt.white,
    QPalette.Base: BASE_COLOR,
    QPalette.AlternateBase: WINDOW_COLOR,
    QPalette.ToolTipBase: Qt.white,
    QPalette.ToolTipText: Qt.black,
    QPalette.Text: Qt.white,
    QPalette.Button: BUTTON_COLOR,
    QPalette.ButtonText: Qt.white,
    QPalette.BrightText: Qt.red,
    QPalette.Link: ACCENT_COLOR,
    QPalette.Highlight: ACCENT_COLOR,
    QPalette.HighlightedText: Qt.white,
    QPalette.PlaceholderText: PLACEHOLDER_TEXT_COLOR,
}

DISABLED_ROLES = (QPalette.Text, QPalette.ButtonText, QPalette.WindowText)


def build_palette():
    """
    dark theme palette from the constants above
    """
    palette = QPalette()
    for role, color in ACTIVE_ROLES.items():
        palette.setColor(role, color)
    for role in DISABLED_ROLES:
        palette.setColor(QPalette.Disabled, role, DISABLED_COLOR)
    return palette


def apply_default_palette(app: QApplication):
    app.setPalette(build_palette())
