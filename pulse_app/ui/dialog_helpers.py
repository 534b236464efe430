"""Helper functions for common dialog patterns in the host console."""

from __future__ import annotations

from PySide6.QtWidgets import QMessageBox, QWidget


def confirm_delete_question(parent: QWidget, question_number: int) -> bool:
    """Show confirmation dialog for deleting a question.

    Args:
        parent: Parent widget for the dialog
        question_number: The question number to display (1-indexed)

    Returns:
        True if user confirmed, False otherwise
    """
    reply = QMessageBox.question(
        parent,
        "Confirm Delete",
        f"Are you sure you want to delete question {question_number}?",
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No
    )
    return reply == QMessageBox.Yes


def confirm_end_session(parent: QWidget) -> bool:
    """Ask before ending the session for every participant."""
    reply = QMessageBox.question(
        parent,
        "End Session",
        "End this session for everyone? Participants will be disconnected and the session "
        "cannot be reopened.",
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No
    )
    return reply == QMessageBox.Yes


def show_info(parent: QWidget, title: str, message: str) -> None:
    """Show information dialog."""
    msg_box = QMessageBox(parent)
    msg_box.setIcon(QMessageBox.Information)
    msg_box.setWindowTitle(title)
    msg_box.setText(message)
    msg_box.setStandardButtons(QMessageBox.Ok)
    msg_box.exec()
