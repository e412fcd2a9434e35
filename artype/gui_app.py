"""
Interactive editor for Artype templates.

Live preview of the character grid with controls for every transform
parameter and the glyph mapping. Left click cycles a cell through the
mapping; right click pins a custom glyph. Changing a control while custom
edits exist asks before throwing them away.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image
from PySide6.QtCore import QSize, Qt, Signal
from PySide6.QtGui import QAction, QImage, QPixmap
from PySide6.QtWidgets import (
    QApplication,
    QCheckBox,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSlider,
    QSpinBox,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .render import render_gradient_preview, render_row_height, save_image, save_text
from .session import ArtypeSession, RecomputeOutcome


def numpy_to_qimage(array: np.ndarray) -> QImage:
    """Convert an RGB numpy array into a QImage."""
    if array.ndim != 3 or array.shape[2] != 3:
        raise ValueError("Expected RGB array for display.")
    height, width, _ = array.shape
    bytes_per_line = 3 * width
    if not array.flags["C_CONTIGUOUS"]:
        array = np.ascontiguousarray(array)
    return QImage(
        array.data, width, height, bytes_per_line, QImage.Format.Format_RGB888
    ).copy()


class PreviewLabel(QLabel):
    """Unscaled grid preview that reports which cell was clicked."""

    cell_clicked = Signal(int, int, object)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop)
        self.setMinimumSize(QSize(320, 320))
        self.setText("\n\nDrop an image or use 'Open Image'")
        self.cell_size = (8, 10)

    def set_image(self, array: np.ndarray, cell_width: int, row_height: int) -> None:
        self.cell_size = (cell_width, row_height)
        self.setPixmap(QPixmap.fromImage(numpy_to_qimage(array)))
        self.adjustSize()

    def mousePressEvent(self, event) -> None:  # noqa: N802
        if self.pixmap() is None or self.pixmap().isNull():
            return
        pos = event.position()
        col = int(pos.x() // self.cell_size[0])
        row = int(pos.y() // self.cell_size[1])
        self.cell_clicked.emit(row, col, event.button())


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Artype - Typewriter Art Editor")
        self.resize(1400, 820)

        self.session = ArtypeSession(confirm=self._confirm_discard)
        self._syncing = False
        self._warned_overrides = False

        self.preview = PreviewLabel()
        self.preview.cell_clicked.connect(self._cell_clicked)
        scroll = QScrollArea()
        scroll.setWidget(self.preview)
        scroll.setWidgetResizable(False)

        self.status_label = QLabel("Ready.")
        self.statusBar().addWidget(self.status_label)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QHBoxLayout()
        central.setLayout(layout)
        layout.addWidget(scroll, stretch=2)
        layout.addWidget(self._build_controls_panel(), stretch=1)

        self.setAcceptDrops(True)
        self._create_menu()
        self._sync_controls()

    # ----------------------- UI construction helpers -----------------------

    def _create_menu(self) -> None:
        open_action = QAction("&Open Image", self)
        open_action.triggered.connect(self.open_image_dialog)
        self.menuBar().addAction(open_action)

    def _slider(self, low: int, high: int) -> QSlider:
        slider = QSlider(Qt.Orientation.Horizontal)
        slider.setRange(low, high)
        slider.valueChanged.connect(self._params_changed)
        return slider

    def _spin(self, low: int, high: int) -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(low, high)
        spin.valueChanged.connect(self._params_changed)
        return spin

    def _build_controls_panel(self) -> QWidget:
        panel = QWidget()
        vbox = QVBoxLayout(panel)

        image_box = QGroupBox("Image")
        image_layout = QVBoxLayout(image_box)
        self.path_field = QLineEdit()
        self.path_field.setReadOnly(True)
        open_btn = QPushButton("Open Image...")
        open_btn.clicked.connect(self.open_image_dialog)
        image_layout.addWidget(self.path_field)
        image_layout.addWidget(open_btn)
        vbox.addWidget(image_box)

        tone_box = QGroupBox("Transform")
        tone_layout = QVBoxLayout(tone_box)
        self.rotation_slider = self._slider(-180, 180)
        self.brightness_slider = self._slider(-100, 100)
        self.contrast_slider = self._slider(-100, 100)
        for label, widget in (
            ("Rotation", self.rotation_slider),
            ("Brightness", self.brightness_slider),
            ("Contrast", self.contrast_slider),
        ):
            row = QHBoxLayout()
            row.addWidget(QLabel(f"{label}:"))
            row.addWidget(widget)
            tone_layout.addLayout(row)

        cell_row = QHBoxLayout()
        self.cell_w_spin = self._spin(1, 64)
        self.cell_h_spin = self._spin(1, 64)
        self.columns_spin = self._spin(1, 400)
        cell_row.addWidget(QLabel("Cell W:"))
        cell_row.addWidget(self.cell_w_spin)
        cell_row.addWidget(QLabel("Cell H:"))
        cell_row.addWidget(self.cell_h_spin)
        cell_row.addWidget(QLabel("Columns:"))
        cell_row.addWidget(self.columns_spin)
        tone_layout.addLayout(cell_row)

        self.alpha_check = QCheckBox("Transparent pixels are paper")
        self.alpha_check.toggled.connect(self._params_changed)
        self.invert_check = QCheckBox("Invert")
        self.invert_check.toggled.connect(self._params_changed)
        tone_layout.addWidget(self.alpha_check)
        tone_layout.addWidget(self.invert_check)
        vbox.addWidget(tone_box)

        mapping_box = QGroupBox("Mapping (0 = lightest)")
        mapping_layout = QVBoxLayout(mapping_box)
        self.gradient_label = QLabel()
        mapping_layout.addWidget(self.gradient_label)
        self.mapping_table = QTableWidget(0, 1)
        self.mapping_table.setHorizontalHeaderLabels(["Glyph"])
        self.mapping_table.itemChanged.connect(self._glyph_edited)
        mapping_layout.addWidget(self.mapping_table)
        level_row = QHBoxLayout()
        add_btn = QPushButton("Add Level")
        add_btn.clicked.connect(lambda: self._apply(self.session.add_level()))
        remove_btn = QPushButton("Remove Level")
        remove_btn.clicked.connect(lambda: self._apply(self.session.remove_level()))
        level_row.addWidget(add_btn)
        level_row.addWidget(remove_btn)
        mapping_layout.addLayout(level_row)
        vbox.addWidget(mapping_box)

        output_box = QGroupBox("Output")
        output_layout = QVBoxLayout(output_box)
        fill_row = QHBoxLayout()
        self.fill_check = QCheckBox("Replace blanks with")
        self.fill_check.toggled.connect(self._fill_changed)
        self.fill_edit = QLineEdit()
        self.fill_edit.setMaxLength(1)
        self.fill_edit.textChanged.connect(self._fill_changed)
        fill_row.addWidget(self.fill_check)
        fill_row.addWidget(self.fill_edit)
        output_layout.addLayout(fill_row)
        self.size_label = QLabel("No grid yet.")
        output_layout.addWidget(self.size_label)
        export_row = QHBoxLayout()
        text_btn = QPushButton("Export Text...")
        text_btn.clicked.connect(self.export_text)
        png_btn = QPushButton("Export PNG...")
        png_btn.clicked.connect(self.export_png)
        reset_btn = QPushButton("Reset")
        reset_btn.clicked.connect(lambda: self._apply(self.session.reset_to_defaults()))
        export_row.addWidget(text_btn)
        export_row.addWidget(png_btn)
        export_row.addWidget(reset_btn)
        output_layout.addLayout(export_row)
        vbox.addWidget(output_box)

        vbox.addStretch(1)
        return panel

    # ----------------------------- Drag & drop -----------------------------

    def dragEnterEvent(self, event) -> None:  # noqa: N802
        if event.mimeData().hasUrls():
            event.acceptProposedAction()
        else:
            super().dragEnterEvent(event)

    def dropEvent(self, event) -> None:  # noqa: N802
        for url in event.mimeData().urls():
            path = Path(url.toLocalFile())
            if path.is_file():
                self.load_image(path)
                break
        event.acceptProposedAction()

    # ----------------------------- Image loading ---------------------------

    def open_image_dialog(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Select input image",
            str(Path.cwd()),
            "Images (*.png *.jpg *.jpeg *.bmp *.gif *.tiff *.webp)",
        )
        if path:
            self.load_image(Path(path))

    def load_image(self, path: Path) -> None:
        try:
            with Image.open(path) as img:
                pixels = np.array(img.convert("RGBA"))
        except Exception as exc:  # pylint: disable=broad-except
            QMessageBox.critical(self, "Error", f"Failed to load image:\n{exc}")
            return
        outcome = self.session.load_image(pixels)
        if outcome is RecomputeOutcome.APPLIED:
            self.path_field.setText(str(path))
        self._apply(outcome)

    # ------------------------------ Session glue ---------------------------

    def _confirm_discard(self, message: str) -> bool:
        answer = QMessageBox.question(
            self,
            "Custom edits",
            message,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes

    def _params_changed(self) -> None:
        if self._syncing:
            return
        outcome = self.session.update_params(
            rotation=self.rotation_slider.value(),
            brightness=self.brightness_slider.value(),
            contrast=self.contrast_slider.value(),
            cell_width=self.cell_w_spin.value(),
            cell_height=self.cell_h_spin.value(),
            columns=self.columns_spin.value(),
            alpha_threshold=self.alpha_check.isChecked(),
            invert=self.invert_check.isChecked(),
        )
        self._apply(outcome)

    def _glyph_edited(self, item: QTableWidgetItem) -> None:
        if self._syncing:
            return
        self._apply(self.session.set_glyph(item.row(), item.text()))

    def _fill_changed(self) -> None:
        if self._syncing:
            return
        self.session.set_fill(self.fill_check.isChecked(), self.fill_edit.text())
        self._refresh_preview()

    def _apply(self, outcome: RecomputeOutcome) -> None:
        """Bring the widgets back in line with the session after a command."""
        if outcome is RecomputeOutcome.DECLINED:
            self.status_label.setText("Change cancelled; custom edits kept.")
        elif outcome is RecomputeOutcome.NOT_READY:
            self.status_label.setText("Load an image first.")
        elif outcome is RecomputeOutcome.APPLIED:
            self.status_label.setText("Grid updated.")
        self._sync_controls()
        self._refresh_preview()

    def _sync_controls(self) -> None:
        params = self.session.params
        self._syncing = True
        try:
            self.rotation_slider.setValue(int(round(params.rotation)))
            self.brightness_slider.setValue(int(round(params.brightness)))
            self.contrast_slider.setValue(int(round(params.contrast)))
            self.cell_w_spin.setValue(params.cell_width)
            self.cell_h_spin.setValue(params.cell_height)
            self.columns_spin.setValue(params.columns)
            self.alpha_check.setChecked(params.alpha_threshold)
            self.invert_check.setChecked(params.invert)
            self.fill_check.setChecked(self.session.fill.fill_spaces)
            self.fill_edit.setText(self.session.fill.fill_char)

            glyphs = list(self.session.mapping)
            self.mapping_table.setRowCount(len(glyphs))
            for idx, glyph in enumerate(glyphs):
                self.mapping_table.setItem(idx, 0, QTableWidgetItem(glyph))
            self.mapping_table.setVerticalHeaderLabels([str(i) for i in range(len(glyphs))])
        finally:
            self._syncing = False

        strip = render_gradient_preview(self.session.mapping, width=320, height=28)
        self.gradient_label.setPixmap(QPixmap.fromImage(numpy_to_qimage(strip)))

    def _refresh_preview(self) -> None:
        if self.session.grid is None:
            return
        params = self.session.grid_params
        self.preview.set_image(
            self.session.image_output(),
            params.cell_width,
            render_row_height(params.cell_height),
        )
        cols, rows = self.session.grid_size
        edits = len(self.session.overrides)
        self.size_label.setText(f"{cols} x {rows} characters, {edits} custom edit(s)")

    def _cell_clicked(self, row: int, col: int, button) -> None:
        if button == Qt.MouseButton.RightButton:
            current = self.session.grid.cell(row, col) if self.session.grid.contains(row, col) else ""
            text, ok = QInputDialog.getText(
                self, "Custom cell", "Enter custom character(s) for this cell:", text=current
            )
            if not ok or not self.session.set_override(row, col, text):
                return
            if not self._warned_overrides:
                self._warned_overrides = True
                QMessageBox.information(
                    self,
                    "Custom edits",
                    "Further image edits (rotation, brightness, contrast, size, etc.) "
                    "will reset custom cell edits. You will be asked before that happens.",
                )
        elif self.session.cycle_glyph(row, col) is None:
            return
        self._refresh_preview()

    # ------------------------------- Export ---------------------------------

    def export_text(self) -> None:
        if self.session.grid is None:
            QMessageBox.warning(self, "Nothing to export", "Load an image first.")
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save text", "artype_template.txt", "Text (*.txt)")
        if path:
            save_text(self.session.grid, Path(path), self.session.fill)
            self.status_label.setText(f"Saved {path}")

    def export_png(self) -> None:
        if self.session.grid is None:
            QMessageBox.warning(self, "Nothing to export", "Load an image first.")
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save image", "artype_template.png", "PNG (*.png)")
        if path:
            params = self.session.grid_params
            save_image(self.session.grid, Path(path), params.cell_width, params.cell_height, self.session.fill)
            self.status_label.setText(f"Saved {path}")

    def dragLeaveEvent(self, event) -> None:  # noqa: N802
        event.accept()


def main() -> None:
    app = QApplication([])
    window = MainWindow()
    window.show()
    app.exec()


if __name__ == "__main__":
    main()
