# -*- coding: utf-8 -*-

import sys
import os
from datetime import datetime

from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
    QLabel, QTextEdit, QLineEdit, QFileDialog, QMessageBox, QProgressBar,
    QGraphicsDropShadowEffect, QGroupBox, QDialog, QTextBrowser
)
from PyQt6.QtCore import QThread, QObject, pyqtSignal, Qt, QTranslator, QLibraryInfo
from PyQt6.QtGui import QColor

from gg_config import (
    APP_TITLE, APP_VERSION, HOSTNAMES, MAX_DOMAIN_LENGTH, load_settings, save_settings
)
from gg_patcher import GGPatcher, PatchError, describe_file

# =============================================================================
# 1. ТЕМА GG
# =============================================================================

GG_PALETTE = {
    'window': '#F4F1E8', 'panel': '#FFFFFF', 'field': '#FBFAF5', 'titlebar': '#2F6B3A',
    'accent': '#F2B705', 'accent_hover': '#FFC824', 'accent_disabled': '#E8DDB5',
    'text': '#222222', 'text_secondary': '#4A4A4A', 'text_muted': '#8A877D',
    'success': '#2E8B3D', 'warning': '#C27C0E', 'error': '#C0392B',
    'border': '#D9D3C1',
}

LOG_COLORS = {
    'info': GG_PALETTE['text_secondary'], 'success': GG_PALETTE['success'],
    'warning': GG_PALETTE['warning'], 'error': GG_PALETTE['error'],
}

def build_stylesheet(p):
    mono = "'Consolas', 'DejaVu Sans Mono', monospace"
    return f"""
    QWidget {{ color: {p['text']}; font-family: 'Tahoma', 'Segoe UI', sans-serif; font-size: 12px; }}
    QMainWindow, QDialog, QMessageBox {{ background-color: {p['window']}; }}
    #RefinedCard, #ElevatedCard {{ background-color: {p['panel']}; border: 1px solid {p['border']}; border-radius: 6px; }}
    #AppHeader {{ background-color: {p['titlebar']}; padding: 16px 24px; }}
    #AppHeader QLabel {{ color: white; }}
    QPushButton {{ padding: 8px 16px; border: 1px solid {p['border']}; border-radius: 4px; background-color: {p['field']}; }}
    QPushButton:hover {{ border-color: {p['accent']}; }}
    QPushButton[variant="primary"] {{ background-color: {p['accent']}; border-color: {p['accent']}; font-weight: bold; }}
    QPushButton[variant="primary"]:hover {{ background-color: {p['accent_hover']}; }}
    QPushButton[variant="primary"]:disabled {{ background-color: {p['accent_disabled']}; color: {p['text_muted']}; }}
    QPushButton[variant="ghost"] {{ background-color: transparent; border: none; color: {p['text_muted']}; }}
    QLabel[class="h1"] {{ font-size: 24px; font-weight: bold; }}
    QLabel[class="h3"] {{ font-size: 15px; font-weight: bold; }}
    QLabel[class="subtitle"] {{ font-size: 13px; font-weight: bold; }}
    QLabel[class="caption"] {{ font-size: 11px; color: {p['text_muted']}; }}
    QLabel[class="mono"] {{ font-family: {mono}; color: {p['text_secondary']}; }}
    QLineEdit, QTextEdit {{ background-color: {p['field']}; border: 1px solid {p['border']}; border-radius: 4px; padding: 6px; font-family: {mono}; }}
    QLineEdit:focus {{ border-color: {p['accent']}; }}
    QGroupBox {{ border: 1px solid {p['border']}; border-radius: 4px; margin-top: 8px; padding-top: 12px; font-weight: bold; }}
    QGroupBox::title {{ subcontrol-origin: margin; left: 8px; padding: 0 4px; color: {p['text_muted']}; }}
    QProgressBar {{ background-color: {p['field']}; border: 1px solid {p['border']}; border-radius: 3px; }}
    QProgressBar::chunk {{ background-color: {p['titlebar']}; }}
    """

GG_STYLESHEET = build_stylesheet(GG_PALETTE)

def create_subtle_shadow():
    shadow = QGraphicsDropShadowEffect()
    shadow.setBlurRadius(16); shadow.setXOffset(0); shadow.setYOffset(2)
    shadow.setColor(QColor(0, 0, 0, 80))
    return shadow

def format_size(size):
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024.0:
            return f"{size:.1f}{unit}"
        size /= 1024.0
    return f"{size:.1f}TB"

# =============================================================================
# 2. WORKER
# =============================================================================

class PatcherWorker(QObject):
    log_message = pyqtSignal(str, str)
    progress_updated = pyqtSignal(int)
    finished = pyqtSignal(bool, str, str)  # успіх, підсумок, шлях до результату

    def __init__(self, file_path, new_address, output_dir=None):
        super().__init__()
        self.file_path = file_path
        self.new_address = new_address
        self.output_dir = output_dir or None

    def run(self):
        patcher = GGPatcher(self.file_path, self.new_address, log_callback=self.log_message.emit)
        try:
            patcher.validate()
            self.progress_updated.emit(10)
            patcher.load_file()
            self.progress_updated.emit(40)
            result = patcher.patch_all()
            self.progress_updated.emit(80)
            out_path = patcher.save(self.output_dir)
            self.progress_updated.emit(100)
        except Exception as err:
            # finished має прийти завжди, інакше кнопка залишиться заблокованою
            self.log_message.emit(f"❌ {err}", "error")
            self.finished.emit(False, str(err) or type(err).__name__, "")
            return
        finally:
            patcher.close()

        summary = (f"Plik spatchowany!\n\n"
                   f"Wszystkie domeny *.gadu-gadu.pl -> {patcher.new_address}\n"
                   f"ASCII: {result.ascii_replacements}x, UTF-16: {result.utf16_replacements}x\n\n"
                   f"{os.path.basename(out_path)}")
        self.finished.emit(True, summary, out_path)

# =============================================================================
# 3. REFINED WIDGETS
# =============================================================================

class RefinedContainer(QWidget):
    def __init__(self, container_type="card", parent=None):
        super().__init__(parent)
        types = {"card": "RefinedCard", "elevated": "ElevatedCard"}
        self.setObjectName(types.get(container_type, "RefinedCard"))
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        if container_type == "elevated":
            self.setGraphicsEffect(create_subtle_shadow())

# =============================================================================
# 4. MAIN WINDOW
# =============================================================================

class PatcherGUI(QMainWindow):
    def __init__(self, settings_path=None):
        super().__init__()
        self.file_path = None
        self.patcher_thread, self.patcher_worker = None, None
        self.settings_path = settings_path
        self.settings = load_settings(settings_path)
        self.setWindowTitle(f"{APP_TITLE} {APP_VERSION}")
        self.setMinimumSize(760, 640)
        self.setStyleSheet(GG_STYLESHEET)
        self.center_window(); self.setup_ui()
        self.log(f"Uruchomiono {APP_TITLE} v{APP_VERSION}", "info")

    def center_window(self):
        if screen := self.screen(): g = screen.availableGeometry(); self.move((g.width() - self.width()) // 2, (g.height() - self.height()) // 2)

    def setup_ui(self):
        main = QWidget(); self.setCentralWidget(main)
        layout = QVBoxLayout(main); layout.setContentsMargins(0, 0, 0, 0); layout.setSpacing(0)
        self._create_header(layout)

        content = QWidget()
        content_layout = QVBoxLayout(content)
        content_layout.setContentsMargins(24, 24, 24, 24)
        content_layout.setSpacing(12)
        content_layout.addWidget(self._create_file_panel())
        content_layout.addWidget(self._create_settings_panel())
        content_layout.addWidget(self._create_log_panel(), 1)

        layout.addWidget(content, 1)
        self._create_bottom(layout)

    def _create_header(self, layout):
        header = QWidget(); header.setObjectName("AppHeader"); header_layout = QHBoxLayout(header)
        title_section = QWidget(); title_layout = QVBoxLayout(title_section); title_layout.setContentsMargins(0,0,0,0); title_layout.setSpacing(2)
        title = QLabel(APP_TITLE); title.setProperty("class", "h1"); title_layout.addWidget(title)
        subtitle = QLabel(f"Version {APP_VERSION}"); subtitle.setProperty("class", "caption"); title_layout.addWidget(subtitle)
        header_layout.addWidget(title_section); header_layout.addStretch()
        layout.addWidget(header)

    def _create_file_panel(self):
        container = RefinedContainer("elevated")
        layout = QHBoxLayout(container)
        layout.setContentsMargins(20, 16, 20, 16)
        layout.setSpacing(12)

        info_layout = QVBoxLayout()
        info_layout.setSpacing(2)
        self.file_name_label = QLabel("Nie wybrano pliku")
        self.file_name_label.setProperty("class", "subtitle")
        info_layout.addWidget(self.file_name_label)
        self.file_details_label = QLabel("Wybierz oryginalny plik GG (gg.exe)")
        self.file_details_label.setProperty("class", "caption")
        info_layout.addWidget(self.file_details_label)
        layout.addLayout(info_layout, 1)

        select_btn = QPushButton("Wybierz plik")
        select_btn.clicked.connect(self.select_file)
        layout.addWidget(select_btn)
        return container

    def _create_settings_panel(self):
        settings = RefinedContainer("card")
        settings_layout = QVBoxLayout(settings)
        settings_layout.setContentsMargins(20, 16, 20, 16)
        settings_layout.setSpacing(12)

        server_group = QGroupBox("Adres serwera")
        server_layout = QHBoxLayout(server_group)
        server_layout.setContentsMargins(12, 6, 12, 12)
        server_layout.setSpacing(12)
        self.address_edit = QLineEdit(self.settings['server_address'])
        self.address_edit.setPlaceholderText("np. gg.example.net")
        self.address_edit.textChanged.connect(self.update_address_counter)
        server_layout.addWidget(self.address_edit, 1)
        self.address_counter = QLabel()
        self.address_counter.setProperty("class", "mono")
        server_layout.addWidget(self.address_counter)
        settings_layout.addWidget(server_group)
        self.update_address_counter(self.address_edit.text())

        output_group = QGroupBox("Katalog wyjściowy")
        output_layout = QHBoxLayout(output_group)
        output_layout.setContentsMargins(12, 6, 12, 12)
        output_layout.setSpacing(12)
        self.output_label = QLabel()
        self.output_label.setProperty("class", "mono")
        output_layout.addWidget(self.output_label, 1)
        output_btn = QPushButton("Zmień")
        output_btn.setProperty("variant", "ghost")
        output_btn.clicked.connect(self.select_output_dir)
        output_layout.addWidget(output_btn)
        settings_layout.addWidget(output_group)
        self.set_output_dir(self.settings['output_dir'])

        self.patch_btn = QPushButton("Patchuj")
        self.patch_btn.setProperty("variant", "primary")
        self.patch_btn.clicked.connect(self.start_patching)
        settings_layout.addWidget(self.patch_btn)
        return settings

    def _create_log_panel(self):
        log = RefinedContainer("card")
        log_layout = QVBoxLayout(log)
        log_layout.setContentsMargins(20, 12, 20, 20)
        log_layout.setSpacing(12)

        header_layout = QHBoxLayout()
        log_title = QLabel("Logi")
        log_title.setProperty("class", "h3")
        header_layout.addWidget(log_title)
        header_layout.addStretch()
        clear_log = QPushButton("Wyczyść")
        clear_log.setProperty("variant", "ghost")
        clear_log.clicked.connect(self.clear_log)
        header_layout.addWidget(clear_log)
        log_layout.addLayout(header_layout)

        self.log_text = QTextEdit()
        self.log_text.setReadOnly(True)
        log_layout.addWidget(self.log_text, 1)
        return log

    def _create_bottom(self, layout):
        bottom = QWidget()
        bottom.setStyleSheet(f"background: {GG_PALETTE['panel']}; border-top: 1px solid {GG_PALETTE['border']};")
        bottom_layout = QVBoxLayout(bottom)
        bottom_layout.setContentsMargins(24, 16, 24, 16)
        bottom_layout.setSpacing(12)

        self.progress = QProgressBar()
        self.progress.setTextVisible(False)
        self.progress.setFixedHeight(5)
        bottom_layout.addWidget(self.progress)

        btn_layout = QHBoxLayout()
        btn_layout.addStretch()
        about_btn = QPushButton("O programie")
        about_btn.setProperty("variant", "ghost")
        about_btn.clicked.connect(self.show_about)
        btn_layout.addWidget(about_btn)
        btn_layout.addStretch()
        bottom_layout.addLayout(btn_layout)
        layout.addWidget(bottom)

    def log(self, msg, level="info"):
        if not msg: self.log_text.append(""); return
        time = datetime.now().strftime("%H:%M:%S"); color = LOG_COLORS.get(level, GG_PALETTE['text_secondary'])
        self.log_text.append(f'<span style="color: {GG_PALETTE["text_muted"]};">{time}</span> <span style="color: {color};">{msg}</span>')

    def clear_log(self): self.log_text.clear(); self.log("Logi wyczyszczone", "info")

    def update_address_counter(self, text):
        length = len(text.strip())
        self.address_counter.setText(f"{length}/{MAX_DOMAIN_LENGTH}")
        color = GG_PALETTE['error'] if length > MAX_DOMAIN_LENGTH else GG_PALETTE['text_muted']
        self.address_counter.setStyleSheet(f"color: {color};")

    def set_output_dir(self, path):
        self.output_dir = path or ''
        self.output_label.setText(self.output_dir or "Obok oryginalnego pliku")

    def select_output_dir(self):
        folder = QFileDialog.getExistingDirectory(self, "Wybierz katalog")
        if folder: self.set_output_dir(folder)

    def select_file(self):
        path, _ = QFileDialog.getOpenFileName(self, "Wybierz plik GG", "", "Pliki wykonywalne (*.exe);;Wszystkie pliki (*)")
        if path: self.set_file(path)

    def set_file(self, path):
        self.file_path = path
        self.file_name_label.setText(os.path.basename(path))
        try:
            info = describe_file(path)
        except OSError as e:
            self.file_details_label.setText("Błąd odczytu")
            self.log(f"❌ Blad odczytu pliku: {e}", "error")
            return
        if info is None:
            self.file_details_label.setText(f"{format_size(os.path.getsize(path))} · brak sygnatury MZ")
            self.log(f"⚠️ {os.path.basename(path)} nie wygląda na plik wykonywalny", "warning")
        else:
            self.file_details_label.setText(f"{info['type']} · {format_size(info['size'])} · {info['arch']}")
            self.log(f"Wybrano: {os.path.basename(path)}", "info")

    def start_patching(self):
        if self.patcher_thread and self.patcher_thread.isRunning():
            return
        new_address = self.address_edit.text()

        # Перевірка до запуску потоку: ядро не викликається з хибними даними
        try:
            GGPatcher(self.file_path, new_address).validate()
        except PatchError as err:
            self.log(f"❌ {err}", "error")
            QMessageBox.warning(self, "Uwaga", str(err))
            return

        self.patch_btn.setEnabled(False)
        self.patch_btn.setText("Patchowanie w toku...")
        self.progress.setValue(0)
        self.log("", "info")

        self.patcher_thread = QThread()
        self.patcher_worker = PatcherWorker(self.file_path, new_address, self.output_dir)
        self.patcher_worker.moveToThread(self.patcher_thread)

        self.patcher_thread.started.connect(self.patcher_worker.run)
        self.patcher_worker.finished.connect(self.patcher_thread.quit)
        self.patcher_worker.log_message.connect(self.log)
        self.patcher_worker.progress_updated.connect(self.progress.setValue)
        self.patcher_worker.finished.connect(self.patching_done)
        self.patcher_thread.finished.connect(self.patcher_worker.deleteLater)

        self.patcher_thread.start()

    def patching_done(self, success, summary, out_path):
        self.patch_btn.setEnabled(True)
        self.patch_btn.setText("Patchuj")
        if success:
            save_settings(self.address_edit.text().strip(), self.output_dir, self.settings_path)
            QMessageBox.information(self, "Gotowe", summary)
        else:
            self.progress.setValue(0)
            QMessageBox.warning(self, "Błąd", summary)

    def show_about(self):
        dialog = QDialog(self)
        dialog.setWindowTitle("O programie")
        dialog.setFixedSize(480, 400)
        dialog.setStyleSheet(GG_STYLESHEET)

        layout = QVBoxLayout(dialog)
        layout.setContentsMargins(24, 24, 24, 24)
        layout.setSpacing(16)

        hosts = "".join(f"<li>{h}</li>" for h in HOSTNAMES)
        about_text = f"""
        <h2>{APP_TITLE} {APP_VERSION}</h2>
        <hr style="margin: 12px 0; border: none; border-top: 1px solid rgba(139, 127, 184, 0.3);">
        <p>Podmienia adresy serwerów w pliku GG (ASCII i UTF-16), zachowując rozmiar pliku.</p>
        <p><b>Zamieniane domeny:</b></p>
        <ul>{hosts}</ul>
        """
        text_browser = QTextBrowser()
        text_browser.setHtml(about_text)
        text_browser.setReadOnly(True)
        layout.addWidget(text_browser, 1)

        close_btn = QPushButton("Zamknij")
        close_btn.setFixedWidth(120)
        close_btn.clicked.connect(dialog.accept)
        btn_layout = QHBoxLayout()
        btn_layout.addStretch()
        btn_layout.addWidget(close_btn)
        btn_layout.addStretch()
        layout.addLayout(btn_layout)

        dialog.exec()

# =============================================================================
# 5. ENTRY POINT
# =============================================================================

def main():
    app = QApplication(sys.argv)
    app.setStyle('Fusion')

    # Локалізація Qt
    translator = QTranslator()
    if translator.load(QLibraryInfo.path(QLibraryInfo.LibraryPath.TranslationsPath) + "/qt_pl.qm"):
        app.installTranslator(translator)

    window = PatcherGUI()
    window.show()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
