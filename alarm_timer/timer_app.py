import argparse
import logging
import threading
from pathlib import Path
from typing import Optional

import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from tkinter import font as tkfont

from .config import AppConfig, load_config
from .countdown import CountdownState, TimerController, TimerStatus, duration_from_fields, parse_time_field
from .errors import PlaybackError
from .logging_config import configure_logging
from .sound import AUDIO_FILE_TYPES, is_supported_audio_file

try:
    import pystray
    from PIL import Image, ImageDraw
except ImportError:  # pragma: no cover
    pystray = None
    Image = None
    ImageDraw = None

logger = logging.getLogger(__name__)


class NumberInput(tk.Entry):
    """Entry that only accepts digits; Up/Down step the value by one."""

    def __init__(self, master: tk.Widget, *, font: Optional[tkfont.Font] = None, **kwargs) -> None:
        self._var = tk.StringVar(value="0")
        super().__init__(master, textvariable=self._var, justify="right", relief="sunken", bd=2, **kwargs)
        if font is not None:
            self.configure(font=font)
        self.bind("<KeyPress>", self._on_keypress)
        self.bind("<FocusOut>", lambda _e: self.set_value(self.get_value()))

    def _on_keypress(self, event: tk.Event) -> Optional[str]:
        keysym = getattr(event, "keysym", "")
        char = getattr(event, "char", "")
        if keysym in {"Up", "Down"}:
            self.set_value(self.get_value() + (1 if keysym == "Up" else -1))
            return "break"
        if keysym in {"BackSpace", "Delete", "Left", "Right", "Home", "End", "Tab", "Return"}:
            return None
        if char and not char.isdigit():
            return "break"
        return None

    def get_value(self) -> int:
        return parse_time_field(self._var.get())

    def set_value(self, value: int) -> None:
        self._var.set(str(max(int(value), 0)))


class TimerScreen:
    """Tk front end: three number fields, start/stop, music picker and the remaining time."""

    WINDOW_BG = "#C0C0C0"
    PANEL_BG = "#D4D0C8"
    EDGE_LIGHT = "#FFFFFF"
    EDGE_DARK = "#404040"
    ACCENT = "#0A246A"
    TEXT_DARK = "#000000"
    FONT_FAMILY = "Tahoma"

    def __init__(self, master: tk.Tk, config: AppConfig) -> None:
        self.master = master
        self.config = config
        self.master.title(config.window_title)
        self.master.configure(bg=self.EDGE_DARK)
        self.master.geometry("420x400")
        self.master.minsize(360, 360)
        if config.always_on_top:
            self.master.attributes("-topmost", True)
        self.master.report_callback_exception = self._report_callback_exception

        self.music_path: Optional[Path] = None
        self.remaining_var = tk.StringVar(value="Remaining Time: 00:00:00")
        self.music_var = tk.StringVar(value="Music: default alarm")

        self.controller = TimerController(master, config=config)
        self._unsubscribe = self.controller.subscribe(self._on_state)

        self._setup_fonts()
        self._create_style()
        self._build_view()
        self._create_tray_icon()
        self._bind_events()

    def _setup_fonts(self) -> None:
        self.fonts = {
            "normal": tkfont.Font(family=self.FONT_FAMILY, size=10),
            "input": tkfont.Font(family=self.FONT_FAMILY, size=11),
            "title": tkfont.Font(family=self.FONT_FAMILY, size=14, weight="bold"),
            "timer": tkfont.Font(family=self.FONT_FAMILY, size=20, weight="bold"),
        }

    def _create_style(self) -> None:
        self.style = ttk.Style()
        try:
            self.style.theme_use("clam")
        except tk.TclError:
            pass
        self.style.configure(
            "Win2000.TLabel",
            background=self.WINDOW_BG,
            foreground=self.TEXT_DARK,
            font=self.fonts["normal"],
        )
        self.style.configure(
            "Win2000.TButton",
            background=self.PANEL_BG,
            foreground=self.TEXT_DARK,
            font=self.fonts["normal"],
            relief="raised",
            padding=(10, 4),
        )
        self.style.map(
            "Win2000.TButton",
            background=[("active", self.EDGE_LIGHT)],
            relief=[("pressed", "sunken"), ("active", "raised")],
        )

    def _build_view(self) -> None:
        outer = tk.Frame(self.master, bg=self.EDGE_LIGHT, bd=2, relief="raised")
        outer.pack(expand=True, fill="both", padx=6, pady=6)
        inner = tk.Frame(outer, bg=self.WINDOW_BG, bd=2, relief="sunken")
        inner.pack(expand=True, fill="both", padx=2, pady=2)

        tk.Label(
            inner,
            text="Set Timer",
            font=self.fonts["title"],
            foreground="#FFFFFF",
            background=self.ACCENT,
            anchor="w",
            padx=12,
        ).pack(fill="x", padx=6, pady=(6, 8))

        fields = tk.Frame(inner, bg=self.WINDOW_BG)
        fields.pack(fill="x", padx=12)
        fields.columnconfigure(1, weight=1)
        self.inputs = {}
        for row, label in enumerate(("Hours", "Minutes", "Seconds")):
            ttk.Label(fields, text=f"{label}:", style="Win2000.TLabel").grid(
                row=row, column=0, sticky="w", padx=(0, 8), pady=3
            )
            entry = NumberInput(fields, font=self.fonts["input"], bg="#FFFFFF", fg=self.TEXT_DARK)
            entry.grid(row=row, column=1, sticky="ew", pady=3)
            self.inputs[label.lower()] = entry

        buttons = tk.Frame(inner, bg=self.WINDOW_BG)
        buttons.pack(fill="x", padx=12, pady=(10, 4))
        for label, command in (
            ("Start Timer", self.start_timer),
            ("Stop Timer", self.stop_timer),
            ("Select Music", self.select_music),
        ):
            ttk.Button(buttons, text=label, style="Win2000.TButton", command=command).pack(
                fill="x", pady=3
            )

        ttk.Label(inner, textvariable=self.music_var, style="Win2000.TLabel").pack(
            fill="x", padx=12, pady=(4, 0)
        )

        panel = tk.Frame(inner, bg=self.PANEL_BG, bd=2, relief="sunken")
        panel.pack(expand=True, fill="both", padx=10, pady=10)
        tk.Label(
            panel,
            textvariable=self.remaining_var,
            font=self.fonts["timer"],
            background=self.PANEL_BG,
            foreground=self.TEXT_DARK,
        ).pack(expand=True, fill="both")

    def _create_tray_icon(self) -> None:
        self.tray_icon = None
        if not self.config.tray_icon or not pystray or not Image:
            return

        size = 64
        image = Image.new("RGB", (size, size), self.ACCENT)
        draw = ImageDraw.Draw(image)
        draw.rectangle((6, 6, size - 7, size - 7), fill=self.PANEL_BG, outline=self.EDGE_LIGHT)
        draw.rectangle((10, 24, size - 11, 36), fill=self.ACCENT)
        draw.text((20, 18), "T", fill=self.TEXT_DARK)

        self.tray_icon = pystray.Icon(
            "alarm_timer",
            image,
            self.config.window_title,
            menu=pystray.Menu(
                pystray.MenuItem("Show", self._show_window),
                pystray.MenuItem("Stop Timer", lambda icon, item: self.master.after(0, self.stop_timer)),
                pystray.MenuItem("Exit", self._quit_app),
            ),
        )
        threading.Thread(target=self.tray_icon.run, daemon=True).start()

    def _bind_events(self) -> None:
        self.master.bind("<Return>", lambda _e: self.start_timer())
        self.master.bind("<Escape>", lambda _e: self.stop_timer())
        self.master.protocol("WM_DELETE_WINDOW", self._quit_app)

    def _show_window(self, icon=None, item=None) -> None:
        self.master.after(0, self.master.deiconify)
        self.master.after(0, self.master.lift)

    def _quit_app(self, icon=None, item=None) -> None:
        if self.tray_icon:
            self.tray_icon.stop()
        self.master.after(0, self._teardown)

    def _teardown(self) -> None:
        self._unsubscribe()
        self.controller.close()
        self.master.destroy()

    def _on_state(self, state: CountdownState) -> None:
        self.remaining_var.set(f"Remaining Time: {state.formatted}")
        if state.status is TimerStatus.EXPIRED:
            self.master.deiconify()
            self.master.lift()

    def _report_callback_exception(self, exc_type, exc, tb) -> None:
        logger.error("Unhandled error in UI callback", exc_info=(exc_type, exc, tb))
        messagebox.showerror("Countdown Timer", str(exc))

    def start_timer(self) -> None:
        duration = duration_from_fields(
            self.inputs["hours"].get_value(),
            self.inputs["minutes"].get_value(),
            self.inputs["seconds"].get_value(),
        )
        try:
            self.controller.start(duration, self.music_path)
        except PlaybackError as exc:
            logger.error("Cannot start timer: %s", exc)
            messagebox.showerror("Unable to Play Sound", str(exc))

    def stop_timer(self) -> None:
        self.controller.stop()

    def select_music(self) -> None:
        file_path = filedialog.askopenfilename(
            parent=self.master,
            title="Select Music",
            filetypes=AUDIO_FILE_TYPES,
        )
        if not file_path:
            return
        path = Path(file_path)
        if not is_supported_audio_file(path):
            messagebox.showerror("Unsupported File", "Please choose a supported audio file.")
            return
        self.music_path = path
        self.music_var.set(f"Music: {path.name}")
        logger.info("Selected alarm music %s", path)

    def run(self) -> None:
        self.master.mainloop()


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Countdown timer that plays an alarm at zero.")
    parser.add_argument("--config", type=Path, help="path to a JSON settings file")
    parser.add_argument("--log-level", help="logging level, e.g. DEBUG or INFO")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(args.log_level or config.log_level)

    root = tk.Tk()
    screen = TimerScreen(root, config)
    screen.run()


if __name__ == "__main__":
    main()
