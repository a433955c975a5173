# --- main.py ---

import logging
import os
import sys
from typing import Optional

# --- Kivy Imports ---
from kivy.config import Config
# Esc is "back" in this app, not "close the window"
Config.set('kivy', 'exit_on_escape', '0')

from kivy.app import App
from kivy.clock import Clock
from kivy.core.window import Window
from kivy.lang import Builder
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.label import Label
from kivy.uix.popup import Popup
from plyer import filechooser

# --- Project Imports ---
from models import ScanConfig, ScanConfigError, SortKey, ViewSnapshot
from events import Action, Input, Resize
from app_state import AppState, ITEM_HEIGHT
from ticker import UiTicker
import cli
import utils

logger = logging.getLogger(__name__)

# Pixel height of one text line in the results pane
LINE_HEIGHT_PX = 18
# Maximum events applied per frame so input stays responsive
MAX_EVENTS_PER_FRAME = 500

KV = '''
<MainLayout>:
    orientation: 'vertical'
    padding: '8dp'
    spacing: '4dp'
    Label:
        id: header_label
        size_hint_y: None
        height: self.texture_size[1] + dp(8)
        text_size: self.width, None
        halign: 'left'
        markup: True
    Label:
        id: status_label
        size_hint_y: None
        height: self.texture_size[1] + dp(4)
        text_size: self.width, None
        halign: 'left'
        shorten: True
    Label:
        id: rows_label
        text_size: self.size
        halign: 'left'
        valign: 'top'
        markup: True
        font_name: 'RobotoMono-Regular'
        line_height: 1.0
'''

HELP_TEXT = (
    "q / Esc     close help, or quit\n"
    "Ctrl+C      quit\n"
    "s           sort by size\n"
    "c           sort by file count\n"
    "Up/Down j/k scroll\n"
    "PgUp/PgDn   scroll a page\n"
    "Home/End    first / last\n"
    "1..8        folder depth (rescans)\n"
    "i           toggle .gitignore/.ignore (rescans)\n"
    "h           toggle hidden files (rescans)\n"
    "f           toggle filters (rescans)\n"
    "?           toggle this help"
)

# kivy keycodes
KEY_ESCAPE, KEY_UP, KEY_DOWN = 27, 273, 274
KEY_HOME, KEY_END, KEY_PAGE_UP, KEY_PAGE_DOWN = 278, 279, 280, 281

SPECIAL_KEYS = {
    KEY_ESCAPE: Action.BACK,
    KEY_UP: Action.SCROLL_UP,
    KEY_DOWN: Action.SCROLL_DOWN,
    KEY_HOME: Action.HOME,
    KEY_END: Action.END,
    KEY_PAGE_UP: Action.PAGE_UP,
    KEY_PAGE_DOWN: Action.PAGE_DOWN,
}

CHAR_KEYS = {
    'q': Action.BACK,
    's': Action.SORT_SIZE,
    'c': Action.SORT_FILES,
    'k': Action.SCROLL_UP,
    'j': Action.SCROLL_DOWN,
    'i': Action.TOGGLE_IGNORE,
    'h': Action.TOGGLE_HIDDEN,
    'f': Action.TOGGLE_FILTERS,
    '?': Action.TOGGLE_HELP,
}


def key_to_input(key: int, codepoint: Optional[str], modifiers) -> Optional[Input]:
    """Maps a kivy key press to an input event, or None if unbound."""
    if 'ctrl' in modifiers and codepoint in ('c', 'C'):
        return Input(Action.QUIT)
    if key in SPECIAL_KEYS:
        return Input(SPECIAL_KEYS[key])
    if not codepoint:
        return None
    if codepoint.isdigit() and codepoint != '0':
        return Input(Action.SET_DEPTH, int(codepoint))
    action = CHAR_KEYS.get(codepoint)
    return Input(action) if action else None


# --- Kivy Widget Definitions ---

class MainLayout(BoxLayout):

    def on_touch_down(self, touch):
        if touch.is_mouse_scrolling:
            app = App.get_running_app()
            # kivy reports the wheel the way ScrollView consumes it
            action = Action.SCROLL_UP if touch.button == 'scrolldown' else Action.SCROLL_DOWN
            app.channel.send(Input(action))
            return True
        return super().on_touch_down(touch)


# --- Main Application Class ---

class DiskStatsApp(App):

    def __init__(self, scan_config: ScanConfig, **kwargs):
        super().__init__(**kwargs)
        self.scan_config = scan_config
        self.state: Optional[AppState] = None
        self.ui_ticker: Optional[UiTicker] = None
        self.help_popup: Optional[Popup] = None

    @property
    def channel(self):
        return self.state.channel

    def build(self):
        self.title = "Disk Stats"
        Builder.load_string(KV)
        return MainLayout()

    def on_start(self):
        self.state = AppState(self.scan_config)
        self.ui_ticker = UiTicker(self.state.channel)
        self.ui_ticker.start()

        Window.bind(on_key_down=self._on_key_down)
        Window.bind(on_resize=self._on_resize)
        self._on_resize(Window, Window.width, Window.height)

        Clock.schedule_interval(self._drain_events, 1 / 30.)
        self.render(self.state.view())

    def on_stop(self):
        if self.ui_ticker:
            self.ui_ticker.stop()
        if self.state:
            self.state.shutdown()

    # --- Input Adapter ---

    def _on_key_down(self, window, key, scancode, codepoint, modifiers):
        event = key_to_input(key, codepoint, modifiers)
        if event is None:
            return False
        self.channel.send(event)
        return True

    def _on_resize(self, window, width, height):
        ids = self.root.ids
        chrome = ids.header_label.height + ids.status_label.height
        lines = int(max(0, height - chrome) // LINE_HEIGHT_PX)
        self.channel.send(Resize(lines))

    # --- Event Loop ---

    def _drain_events(self, dt):
        handled = 0
        while handled < MAX_EVENTS_PER_FRAME and self.state.pump(timeout=0):
            handled += 1
            if self.state.should_quit:
                break

        if self.state.should_quit:
            self.stop()
            return False
        if handled:
            self.render(self.state.view())

    # --- Renderer ---

    def render(self, view: ViewSnapshot):
        ids = self.root.ids
        ids.header_label.text = self._header_text(view)
        ids.status_label.text = self._status_text(view)
        ids.rows_label.text = self._rows_text(view)
        self._sync_help(view.show_help)

    def _header_text(self, view: ViewSnapshot) -> str:
        cfg = view.config
        sort_name = "size" if view.sort_key is SortKey.SIZE else "files"
        filters = ", ".join(str(f) for f in cfg.filters) or "none"
        return (
            f"[b]{cfg.root_path}[/b]   "
            f"Total: [color=ff5555]{utils.format_bytes(view.totals.size)}[/color]  "
            f"Files: [color=ff5555]{view.totals.files}[/color]  "
            f"Depth: {cfg.depth}  Sort: {sort_name}  "
            f"Ignores: {cfg.respect_ignore_files}  Hidden: {cfg.include_hidden}  "
            f"Filters: {filters if view.filters_enabled else 'off'}"
        )

    def _status_text(self, view: ViewSnapshot) -> str:
        if view.error:
            return f"Error: {view.error}"
        if view.scanning:
            short_path = view.folder_name.replace(view.config.root_path, "...", 1)
            return f"Scanning: {short_path}"
        return f"Scan complete in {view.scan_time:.2f}s. {len(view.rows)} folders. Press ? for help."

    def _rows_text(self, view: ViewSnapshot) -> str:
        page = max(1, view.viewport_height // ITEM_HEIGHT)
        lines = []
        for index, (path, stat) in enumerate(view.visible_rows(page), start=view.scroll_offset + 1):
            percent = view.percent_of_total(stat)
            bar = "#" * int(percent // 5)
            lines.append(f"[b]{index}. {path or os.sep}[/b]")
            lines.append(f"   {utils.format_bytes(stat.size):>12}  {stat.files} files  {percent:6.2f}%")
            lines.append(f"   [color=55aaff]{bar}[/color]")
            lines.append("")
        return "\n".join(lines)

    def _sync_help(self, show_help: bool):
        if show_help and self.help_popup is None:
            self.help_popup = Popup(
                title="Help",
                content=Label(text=HELP_TEXT, font_name='RobotoMono-Regular'),
                size_hint=(0.6, 0.6),
                auto_dismiss=False
            )
            self.help_popup.open()
        elif not show_help and self.help_popup is not None:
            self.help_popup.dismiss()
            self.help_popup = None


def choose_root_path() -> Optional[str]:
    """Asks for a folder with the native chooser. Returns None if cancelled."""
    try:
        path = filechooser.choose_dir(title="Select a directory to scan")
    except Exception as e:
        logger.warning("Could not open folder chooser: %s", e)
        return None
    return path[0] if path else None


def main(argv=None) -> int:
    args = cli.parse_args(argv)
    cli.setup_logging(args.log_file)

    path = args.path or choose_root_path()
    try:
        config = cli.build_config(args, path)
    except ScanConfigError as e:
        logger.error("%s", e)
        print(f"[Error] {e}", file=sys.stderr)
        return 2

    DiskStatsApp(config).run()
    return 0


# --- Entry Point ---
if __name__ == "__main__":
    if sys.platform == 'win32':
        try:
            import ctypes
            ctypes.windll.shcore.SetProcessDpiAwareness(1)
        except Exception as e:
            print(f"Could not set DPI awareness: {e}")

    sys.exit(main())
