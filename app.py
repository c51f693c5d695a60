import sys
import os
import html
import logging
import subprocess
import urllib.parse
import webbrowser
from typing import Optional
from datetime import datetime
from PyQt5.QtWidgets import (
    QApplication, QMainWindow, QAction, QFileDialog, QWidget,
    QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QMessageBox, QCheckBox,
    QFormLayout, QDialog, QTextBrowser, QComboBox, QSpinBox, QLineEdit
)
from PyQt5.QtCore import Qt, QThread, pyqtSignal, QUrl, QObject, QEvent

from minemap import load_geojson, extract_attributes, attribute_year
from minemap.config import MapSettings, init_project
from minemap.errors import DataLoadError, SchemaError
from minemap.map_create import create_map
from minemap.visualize import plot_year_bar, plot_rank_changes

logger = logging.getLogger("minemap.app")


def reveal_in_file_manager(path: str):
    if not path or not os.path.exists(path):
        return
    try:
        if sys.platform == 'darwin':
            subprocess.run(['open', '-R', path], check=False)
        elif os.name == 'nt':
            norm = os.path.normpath(path)
            subprocess.run(['explorer', f'/select,{norm}'], check=False)
        else:
            directory = os.path.dirname(path) or '.'
            subprocess.run(['xdg-open', directory], check=False)
    except OSError as exc:
        logger.warning("Could not open file manager for %s: %s", path, exc)


class WorkerThread(QThread):
    finished = pyqtSignal(object)

    def __init__(self, task_func, *args, **kwargs):
        super().__init__()
        self.task_func = task_func
        self.args = args
        self.kwargs = kwargs

    def run(self):
        try:
            result = self.task_func(*self.args, **self.kwargs)
            self.finished.emit(result)
        except Exception as e:
            self.finished.emit(e)


class LogSignalHandler(QObject, logging.Handler):
    """Forwards log records to the GUI thread as formatted text."""
    record_emitted = pyqtSignal(str, int)

    def __init__(self):
        QObject.__init__(self)
        logging.Handler.__init__(self, level=logging.INFO)
        self.setFormatter(logging.Formatter('%(levelname)s %(name)s: %(message)s'))

    def emit(self, record):
        self.record_emitted.emit(self.format(record), record.levelno)


class CloseShortcutFilter(QObject):
    def eventFilter(self, obj, event):
        if event.type() == QEvent.KeyPress and event.key() == Qt.Key_W:
            modifiers = event.modifiers()
            if modifiers & (Qt.ControlModifier | Qt.MetaModifier):
                window = QApplication.activeWindow()
                if window is not None and hasattr(window, 'close'):
                    window.close()
                    return True
        return super().eventFilter(obj, event)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self._base_title = 'MineMap'
        self.setWindowTitle(self._base_title)
        self.resize(900, 600)
        self.project_folder = os.getcwd()
        self.geojson_file = None
        self.dataset = None
        self.attributes = []
        self.map_settings = MapSettings().to_dict()
        self.map_settings.update({'start_index': 0, 'show_summary': True})
        self.init_ui()
        self._log_handler = LogSignalHandler()
        self._log_handler.record_emitted.connect(self._append_log_record)
        logging.getLogger('minemap').addHandler(self._log_handler)
        self._close_filter = CloseShortcutFilter()
        QApplication.instance().installEventFilter(self._close_filter)
        self._update_window_title()

    def init_ui(self):
        menubar = self.menuBar()
        file_menu = menubar.addMenu('File')
        file_menu.addAction(self._action('Open GeoJSON…', self.open_geojson_file))
        file_menu.addAction(self._action('Set Project Folder…', self.set_project_folder))
        file_menu.addAction(self._action('Open Project Folder', self.open_project_folder))
        file_menu.addSeparator()
        file_menu.addAction(self._action('Quit', self.close))

        tools_menu = menubar.addMenu('Tools')
        tools_menu.addAction(self._action('Create Map…', self.open_create_map_dialog))
        tools_menu.addAction(self._action('Mines per State (Year)…', self.show_year_bar))
        tools_menu.addAction(self._action('State Rank Changes', self.show_rank_changes))

        central = QWidget()
        layout = QVBoxLayout(central)
        self.geojson_label = QLabel()
        self.geojson_label.setWordWrap(True)
        layout.addWidget(self.geojson_label)
        self.stats_label = QLabel()
        self.stats_label.setWordWrap(True)
        layout.addWidget(self.stats_label)

        buttons = QHBoxLayout()
        self.open_btn = QPushButton('Open GeoJSON…')
        self.open_btn.clicked.connect(self.open_geojson_file)
        buttons.addWidget(self.open_btn)
        self.map_btn = QPushButton('Create Map…')
        self.map_btn.clicked.connect(self.open_create_map_dialog)
        buttons.addWidget(self.map_btn)
        buttons.addStretch(1)
        layout.addLayout(buttons)

        self.log_view = QTextBrowser()
        self.log_view.setOpenLinks(False)
        self.log_view.anchorClicked.connect(self._handle_log_link)
        layout.addWidget(self.log_view, 1)
        self.setCentralWidget(central)
        self._update_loaded_file_labels()

    def _action(self, name, slot):
        action = QAction(name, self)
        action.triggered.connect(slot)
        return action

    def _update_window_title(self):
        name = os.path.basename(self.geojson_file) if self.geojson_file else 'No dataset'
        self.setWindowTitle(f'{self._base_title} – {name}')

    def _update_loaded_file_labels(self):
        if self.geojson_file:
            self.geojson_label.setText(f'GeoJSON: {self.geojson_file}')
        else:
            self.geojson_label.setText('GeoJSON: none loaded')
        self.map_btn.setEnabled(bool(self.dataset))
        if not self.dataset or not self.attributes:
            self.stats_label.setText('')
            return
        years = [attribute_year(a) for a in self.attributes]
        self.stats_label.setText(
            f'{len(self.dataset)} states | years {years[0]}–{years[-1]} ({len(years)} steps)'
        )

    def _append_log_record(self, text: str, level: int):
        color = '#b00020' if level >= logging.ERROR else ('#8a6d00' if level >= logging.WARNING else '#333')
        self.log_view.append(f'<span style="color:{color};">{html.escape(text)}</span>')

    def append_log(self, html_lines: list):
        stamp = datetime.now().strftime('%H:%M:%S')
        self.log_view.append(f'<div><strong>[{stamp}]</strong></div>' + ''.join(html_lines))

    @staticmethod
    def _link_html(path: Optional[str], label: str) -> str:
        if not path:
            return html.escape(label)
        encoded = urllib.parse.quote(path)
        return f'{html.escape(path)} [<a href="minemap-open:{encoded}">Show in folder</a>]'

    def _handle_log_link(self, url: QUrl):
        if url.scheme() == 'minemap-open':
            reveal_in_file_manager(urllib.parse.unquote(url.path()))

    def set_project_folder(self):
        folder = QFileDialog.getExistingDirectory(self, 'Select Project Folder', self.project_folder)
        if folder:
            self.project_folder = folder
            init_project(folder)

    def open_project_folder(self):
        reveal_in_file_manager(init_project(self.project_folder)['output'])

    def open_geojson_file(self):
        path, _ = QFileDialog.getOpenFileName(
            self, 'Open GeoJSON', self.project_folder, 'GeoJSON (*.geojson *.json)'
        )
        if path:
            self.load_dataset(path)

    def load_dataset(self, path: str) -> bool:
        try:
            dataset = load_geojson(path)
            attributes = extract_attributes(dataset.features)
        except (DataLoadError, SchemaError) as exc:
            QMessageBox.critical(self, 'GeoJSON Error', f'Failed to load dataset:\n{exc}')
            return False
        self.geojson_file = path
        self.dataset = dataset
        self.attributes = attributes
        self.map_settings['start_index'] = 0
        self._update_loaded_file_labels()
        self._update_window_title()
        self.append_log([f'<div><strong>Loaded:</strong> {self._link_html(path, "GeoJSON")}</div>'])
        return True

    def open_create_map_dialog(self):
        if not self.dataset:
            QMessageBox.warning(self, 'GeoJSON Required', 'Please open a GeoJSON file first.')
            return
        dlg = MapToolDialog(self)
        dlg.exec_()

    def _ask_year(self) -> Optional[str]:
        if not self.attributes:
            return None
        dlg = QDialog(self)
        dlg.setWindowTitle('Select Year')
        form = QFormLayout(dlg)
        combo = QComboBox()
        for attr in self.attributes:
            combo.addItem(attribute_year(attr), attr)
        form.addRow('Year:', combo)
        ok = QPushButton('Plot')
        ok.clicked.connect(dlg.accept)
        form.addRow(ok)
        if dlg.exec_() != QDialog.Accepted:
            return None
        return combo.currentData()

    def show_year_bar(self):
        if not self.dataset:
            QMessageBox.warning(self, 'GeoJSON Required', 'Please open a GeoJSON file first.')
            return
        attribute = self._ask_year()
        if not attribute:
            return
        try:
            plot_year_bar(self.dataset, attribute)
        except ValueError as exc:
            QMessageBox.information(self, 'No Data', str(exc))

    def show_rank_changes(self):
        if not self.dataset:
            QMessageBox.warning(self, 'GeoJSON Required', 'Please open a GeoJSON file first.')
            return
        try:
            plot_rank_changes(self.dataset, top_n=10)
        except ValueError as exc:
            QMessageBox.information(self, 'No Data', str(exc))


class MapToolDialog(QDialog):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle('Create Map')
        self.setMinimumSize(480, 260)
        self._parent = parent
        self._worker = None
        defaults = getattr(parent, 'map_settings', {})
        self.geojson_path = getattr(parent, 'geojson_file', None)
        attributes = getattr(parent, 'attributes', [])

        main_layout = QVBoxLayout(self)
        form = QFormLayout()

        self.geojson_display = QLabel(self.geojson_path or '')
        self.geojson_display.setWordWrap(True)
        form.addRow('GeoJSON:', self.geojson_display)

        self.year_combo = QComboBox()
        for attr in attributes:
            self.year_combo.addItem(attribute_year(attr), attr)
        self.year_combo.setCurrentIndex(min(int(defaults.get('start_index', 0)), max(0, len(attributes) - 1)))
        form.addRow('Start year:', self.year_combo)

        self.zoom_spin = QSpinBox()
        self.zoom_spin.setRange(1, 18)
        self.zoom_spin.setValue(int(defaults.get('zoom_start', 5)))
        form.addRow('Initial zoom:', self.zoom_spin)

        self.fill_edit = QLineEdit(str(defaults.get('fill_color', '#ff7800')))
        form.addRow('Marker fill:', self.fill_edit)

        self.summary_check = QCheckBox('Show dataset summary panel')
        self.summary_check.setChecked(bool(defaults.get('show_summary', True)))
        form.addRow(self.summary_check)

        main_layout.addLayout(form)
        self.status_label = QLabel()
        self.status_label.setWordWrap(True)
        main_layout.addWidget(self.status_label)

        btn_row = QHBoxLayout()
        btn_row.addStretch(1)
        self.create_btn = QPushButton('Create Map')
        self.create_btn.clicked.connect(self._run_create_map)
        btn_row.addWidget(self.create_btn)
        close_btn = QPushButton('Close')
        close_btn.clicked.connect(self.reject)
        btn_row.addWidget(close_btn)
        main_layout.addLayout(btn_row)

    def _collect_config(self) -> dict:
        parent_settings = dict(getattr(self._parent, 'map_settings', {}) or {})
        parent_settings.update({
            'zoom_start': self.zoom_spin.value(),
            'fill_color': self.fill_edit.text().strip() or '#ff7800',
            'start_index': max(0, self.year_combo.currentIndex()),
            'show_summary': self.summary_check.isChecked(),
        })
        return parent_settings

    def _run_create_map(self):
        if not self.geojson_path:
            QMessageBox.warning(self, 'GeoJSON Required', 'Please select a GeoJSON file to map.')
            return
        cfg = self._collect_config()
        if self._parent is not None:
            self._parent.map_settings = dict(cfg)
        project_dir = getattr(self._parent, 'project_folder', None)

        self.create_btn.setEnabled(False)
        self.status_label.setText('Creating map…')
        QApplication.setOverrideCursor(Qt.BusyCursor)
        self._worker = WorkerThread(
            create_map,
            self.geojson_path,
            start_index=cfg['start_index'],
            settings=MapSettings.from_dict(cfg),
            show_summary=cfg['show_summary'],
            project_dir=project_dir,
        )
        self._worker.finished.connect(self._create_map_finished)
        self._worker.start()

    def _create_map_finished(self, result):
        QApplication.restoreOverrideCursor()
        self.create_btn.setEnabled(True)
        if isinstance(result, Exception):
            self.status_label.setText('')
            QMessageBox.critical(self, 'Map Error', f'Failed to create map:\n{result}')
            return

        map_path = result.get('map_path') if isinstance(result, dict) else None
        if not map_path:
            QMessageBox.critical(self, 'Map Error', 'Map creation did not return an output path.')
            return
        if result.get('error'):
            QMessageBox.warning(self, 'Map Data Error', f'The map was written without data:\n{result["error"]}')

        summary = result.get('summary', {})
        self._display_status(summary)
        webbrowser.open('file://' + os.path.abspath(map_path))
        if self._parent is not None:
            self._parent.append_log(self._build_log_lines(map_path, summary))

    def _build_log_lines(self, map_path: str, summary: dict) -> list:
        lines = [f'<div><strong>Map output:</strong> {MainWindow._link_html(map_path, "Open map file")}</div>']
        if summary:
            years = summary.get('years') or []
            year_text = f"{years[0]}–{years[-1]}" if years else 'n/a'
            lines.append(
                '<div><strong>Summary:</strong> '
                f"States: {summary.get('states', 'n/a')}; Years: {html.escape(year_text)}; "
                f"Start year: {html.escape(str(summary.get('start_year', '')))}; "
                f"Min/Mean/Max: {summary.get('min', 0):.2f} / {summary.get('mean', 0):.2f} / {summary.get('max', 0):.2f}"
                '</div>'
            )
        return lines

    def _display_status(self, summary: dict):
        if not summary:
            self.status_label.setText('Map created.')
            return
        parts = [f"States: {summary.get('states')}", f"Start year: {summary.get('start_year')}"]
        if summary.get('missing_values'):
            parts.append(f"Missing values: {summary['missing_values']}")
        self.status_label.setText(html.escape('Map created successfully. ' + '; '.join(parts)))

    def closeEvent(self, event):
        if self._worker is not None and self._worker.isRunning():
            self._worker.wait()
        super().closeEvent(event)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app = QApplication(sys.argv)
    win = MainWindow()
    if len(sys.argv) > 1:
        win.load_dataset(sys.argv[1])
    win.show()
    sys.exit(app.exec_())
