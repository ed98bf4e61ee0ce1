"""Capture window: live transcript, editable draft and confirmed counts."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from models import FIELD_NAMES, InventoryRecord, SessionState

try:
    from PySide6.QtCore import Qt
    from PySide6.QtWidgets import (
        QFormLayout,
        QHBoxLayout,
        QLabel,
        QLineEdit,
        QListWidget,
        QPushButton,
        QVBoxLayout,
        QWidget,
    )
except Exception:  # pragma: no cover
    Qt = None  # type: ignore
    QWidget = object  # type: ignore

FIELD_LABELS = {
    "product_code": "Código do produto",
    "box_count": "Caixas",
    "unit_count": "Unidades soltas",
    "manufacture_date": "Fabricação (AAAA-MM-DD)",
    "address": "Endereço (L NNN NNNN)",
}

STATE_LABELS = {
    SessionState.IDLE: "Pronto",
    SessionState.LISTENING: "🎙️ Ouvindo...",
    SessionState.COMPLETING: "Finalizando...",
    SessionState.AWAITING_EXTRACTION: "Processando...",
    SessionState.DRAFT_READY: "Confira e confirme",
    SessionState.ERROR: "Erro",
}


def format_record(record: InventoryRecord) -> str:
    def show(value: object) -> str:
        return "-" if value is None else str(value)

    return (
        f"{show(record.product_code)} | cx {show(record.box_count)} | un {show(record.unit_count)}"
        f" | fab {show(record.manufacture_date)} | end {show(record.address)}"
    )


class CaptureWindow(QWidget):
    def __init__(
        self,
        on_toggle: Callable[[], None],
        on_confirm: Callable[[], None],
        on_edit: Callable[[str, str], Optional[str]],
    ) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self.setWindowTitle("Contagem por voz")
        self.setMinimumWidth(560)
        self._on_edit = on_edit
        self._state = SessionState.IDLE

        self._state_label = QLabel(STATE_LABELS[SessionState.IDLE])
        self._state_label.setStyleSheet("font-size: 16px; font-weight: bold;")
        self._transcript = QLabel("")
        self._transcript.setWordWrap(True)
        self._transcript.setStyleSheet(
            "color: white; font-size: 16px; padding: 12px;"
            "background: rgba(0,0,0,190); border-radius: 8px;"
        )
        self._error = QLabel("")
        self._error.setWordWrap(True)
        self._error.setStyleSheet("color: #FF6B6B;")

        form = QFormLayout()
        self._fields: dict[str, QLineEdit] = {}
        for name in FIELD_NAMES:
            edit = QLineEdit()
            edit.setEnabled(False)
            edit.editingFinished.connect(lambda name=name: self._commit_field(name))
            self._fields[name] = edit
            form.addRow(FIELD_LABELS[name], edit)

        self._toggle_button = QPushButton("Iniciar")
        self._toggle_button.clicked.connect(on_toggle)
        self._confirm_button = QPushButton("Confirmar")
        self._confirm_button.setEnabled(False)
        self._confirm_button.clicked.connect(on_confirm)
        buttons = QHBoxLayout()
        buttons.addWidget(self._toggle_button)
        buttons.addWidget(self._confirm_button)

        self._records = QListWidget()

        layout = QVBoxLayout()
        layout.addWidget(self._state_label)
        layout.addWidget(self._transcript)
        layout.addLayout(form)
        layout.addLayout(buttons)
        layout.addWidget(self._error)
        layout.addWidget(QLabel("Itens contados"))
        layout.addWidget(self._records)
        self.setLayout(layout)

    def set_state(self, state: SessionState) -> None:
        self._state = state
        self._state_label.setText(STATE_LABELS[state])
        self._toggle_button.setText("Parar" if state == SessionState.LISTENING else "Iniciar")
        self._toggle_button.setEnabled(state not in (SessionState.COMPLETING, SessionState.AWAITING_EXTRACTION))
        draft_ready = state == SessionState.DRAFT_READY
        self._confirm_button.setEnabled(draft_ready)
        for edit in self._fields.values():
            edit.setEnabled(draft_ready)
        if state == SessionState.LISTENING:
            self._error.setText("")
            self.show_draft(None)

    def set_transcript(self, text: str) -> None:
        self._transcript.setText(text)

    def show_draft(self, record: Optional[InventoryRecord]) -> None:
        for name, edit in self._fields.items():
            value = None if record is None else getattr(record, name)
            edit.setText("" if value is None else str(value))

    def show_records(self, records: Iterable[InventoryRecord]) -> None:
        self._records.clear()
        for record in records:
            self._records.addItem(format_record(record))

    def show_error(self, text: str) -> None:
        self._error.setText(f"⚠️ {text}")

    def _commit_field(self, name: str) -> None:
        if self._state != SessionState.DRAFT_READY:
            return
        problem = self._on_edit(name, self._fields[name].text())
        if problem:
            self.show_error(problem)
        else:
            self._error.setText("")
