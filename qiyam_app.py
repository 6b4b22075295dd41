#!/usr/bin/env python3
"""
Qiyam Desktop Widget
Night-themed always-on-top window showing:
  - The Qiyam window (last third of the night) for the saved location
  - Countdown to its start, or whether it is active / over
  - Night progress from Maghrib (or Isha) to Fajr
  - Reference Maghrib / Isha / Fajr times and the Hijri date
  - Desktop reminders before the window starts and before Fajr
"""

import datetime
import logging
import os
import threading
import tkinter as tk

import pytz

from qiyam.errors import DataUnavailableError, GeolocationDeniedError
from qiyam.fetch_cache import FetchCache
from qiyam.location import coordinates_label, get_device_location, reverse_geocode, search_places
from qiyam.night import Convention
from qiyam.notifier import schedule_window_reminders
from qiyam.prayer_api import METHODS, NIGHT_PRAYERS, fetch_calculation_methods, method_name
from qiyam.projector import WindowState, progress_ratio, project_state
from qiyam.resolver import resolve_night_timings
from qiyam.settings import CONFIG_FILE, Location, load_settings, toggle_time_format, update_settings
from qiyam.summary import build_diagnostics, build_summary, format_attribution, random_virtue
from qiyam.ticker import SEARCH_DEBOUNCE_MS, Debouncer, WindowTicker
from qiyam.times import TIME_FORMAT_12H, format_duration, format_time, parse_time_of_day

logger = logging.getLogger("qiyam")

# ──────────────────────────────────────────────────────────────────────────────
# Theme constants: night palette
# ──────────────────────────────────────────────────────────────────────────────
BG_NIGHT = "#0b1020"         # deep night background
BG_CARD = "#141a2e"          # card background
BG_ACTIVE = "#1b2b4a"        # highlighted card while the window is active
BORDER_COLOR = "#3b4f8a"     # indigo border
ACCENT_MOON = "#e8d9a8"      # moonlight accent
ACCENT_STAR = "#8fb3ff"      # starlight blue
TEXT_WHITE = "#e6e9f2"
TEXT_DIM = "#7d86a1"
TEXT_RED = "#ff6b6b"
TEXT_AMBER = "#f0b860"
PROGRESS_BG = "#242c47"

FONT_BODY = ("Courier", 10, "bold")
FONT_SMALL = ("Courier", 8)
FONT_LARGE = ("Courier", 14, "bold")
FONT_TITLE = ("Courier", 12, "bold")
FONT_HERO = ("Courier", 30, "bold")

WINDOW_W = 440
WINDOW_H = 640

COMPACT_W = 320
COMPACT_H = 80

PROGRESS_W = 380
PROGRESS_H = 8

STATE_TEXT = {
    WindowState.ACTIVE: "● CURRENT WINDOW ACTIVE",
    WindowState.ENDED: "WINDOW ENDED",
}


def _local_zone(name):
    """pytz zone for a location, or None to fall back to the machine's clock."""
    if not name:
        return None
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r, using local time", name)
        return None


# ──────────────────────────────────────────────────────────────────────────────
# Main App
# ──────────────────────────────────────────────────────────────────────────────
class QiyamApp:
    def __init__(self, root: tk.Tk, config_file: str = None):
        self.root = root
        self._drag_x = 0
        self._drag_y = 0

        self.config_file = config_file or CONFIG_FILE
        first_run = not os.path.isfile(self.config_file)
        self.settings = load_settings(self.config_file)
        self.tz = _local_zone(self.settings.location.timezone)
        self.address = self.settings.location.label or ""

        self.night = None
        self.window = None
        self.active_timers: list = []
        self._is_compact = False
        self._settings_dlg = None

        self.cache = FetchCache(self._load_night)
        self.ticker = WindowTicker(
            self.root.after, self.root.after_cancel, self._tick_countdown, self._tick_progress
        )

        self._setup_window()
        self._build_ui()
        self._request_times()
        if first_run:
            self._locate_device()
        elif not self.address:
            self._resolve_address()

    # ──────────────────────────────────────────────────────────────────────
    # Window setup
    # ──────────────────────────────────────────────────────────────────────
    def _setup_window(self):
        root = self.root
        root.title("Qiyam")
        root.configure(bg=BG_NIGHT)
        root.resizable(False, False)
        root.overrideredirect(True)
        root.attributes("-topmost", True)
        root.attributes("-alpha", 0.96)

        x = root.winfo_screenwidth() - WINDOW_W - 40
        y = (root.winfo_screenheight() - WINDOW_H) // 2
        root.geometry(f"{WINDOW_W}x{WINDOW_H}+{x}+{y}")

        root.bind("<ButtonPress-1>", self._on_drag_start)
        root.bind("<B1-Motion>", self._on_drag_motion)
        root.protocol("WM_DELETE_WINDOW", self.close)

    def _on_drag_start(self, event):
        self._drag_x = event.x_root - self.root.winfo_x()
        self._drag_y = event.y_root - self.root.winfo_y()

    def _on_drag_motion(self, event):
        self.root.geometry(f"+{event.x_root - self._drag_x}+{event.y_root - self._drag_y}")

    def close(self):
        """Stop both refresh loops, pending fetches and reminders, then quit."""
        self.ticker.stop()
        self.cache.close()
        self._cancel_reminders()
        self.root.destroy()

    # ──────────────────────────────────────────────────────────────────────
    # UI construction
    # ──────────────────────────────────────────────────────────────────────
    def _button(self, parent, text, command, fg=ACCENT_STAR, bg=BG_CARD, font=FONT_SMALL):
        return tk.Button(
            parent, text=text, font=font, fg=fg, bg=bg,
            activeforeground=TEXT_WHITE, activebackground=BG_ACTIVE,
            bd=0, cursor="hand2", command=command,
        )

    def _build_ui(self):
        outer = tk.Frame(self.root, bg=BORDER_COLOR, bd=0)
        outer.pack(fill=tk.BOTH, expand=True, padx=2, pady=2)
        inner = tk.Frame(outer, bg=BG_NIGHT, bd=0)
        inner.pack(fill=tk.BOTH, expand=True, padx=1, pady=1)

        # ── title bar ─────────────────────────────────────────────────────
        title_bar = tk.Frame(inner, bg=BG_CARD, height=32)
        title_bar.pack(fill=tk.X, side=tk.TOP)
        title_bar.pack_propagate(False)
        tk.Label(
            title_bar, text="  🌙  QIYAM  ◆  قيام الليل  ",
            font=FONT_BODY, fg=ACCENT_MOON, bg=BG_CARD,
        ).pack(side=tk.LEFT, padx=6)
        self._button(title_bar, " ✕ ", self.close, fg=TEXT_RED).pack(side=tk.RIGHT, padx=4, pady=4)
        self._button(title_bar, " ─ ", self._toggle_compact, fg=ACCENT_MOON).pack(side=tk.RIGHT, pady=4)
        self._button(title_bar, " ⚙ ", self._show_settings_dialog).pack(side=tk.RIGHT, pady=4)

        # ── full-mode content ─────────────────────────────────────────────
        self._full_content = tk.Frame(inner, bg=BG_NIGHT)
        self._full_content.pack(fill=tk.BOTH, expand=True)
        content = self._full_content

        loc_frame = tk.Frame(content, bg=BG_NIGHT)
        loc_frame.pack(pady=(8, 0), fill=tk.X, padx=10)
        self.lbl_location = tk.Label(
            loc_frame, text=self._location_text(), font=FONT_BODY, fg=TEXT_DIM, bg=BG_NIGHT,
        )
        self.lbl_location.pack(side=tk.LEFT, expand=True)
        self._button(loc_frame, "⟳", lambda: self._request_times(force=True), bg=BG_NIGHT).pack(side=tk.RIGHT)

        self.lbl_hijri = tk.Label(content, text="", font=FONT_BODY, fg=ACCENT_MOON, bg=BG_NIGHT)
        self.lbl_hijri.pack()

        # ── hero card: the Qiyam window ───────────────────────────────────
        self.hero = tk.Frame(content, bg=BG_CARD, bd=1, relief=tk.RIDGE)
        self.hero.pack(fill=tk.X, padx=14, pady=8)

        tk.Label(
            self.hero, text="QIYAM WINDOW", font=FONT_BODY, fg=ACCENT_STAR, bg=BG_CARD,
        ).pack(pady=(8, 0))
        self.lbl_start = tk.Label(self.hero, text="--:--", font=FONT_HERO, fg=TEXT_WHITE, bg=BG_CARD)
        self.lbl_start.pack()
        self.lbl_until = tk.Label(self.hero, text="", font=FONT_BODY, fg=TEXT_DIM, bg=BG_CARD)
        self.lbl_until.pack()
        self.lbl_state = tk.Label(self.hero, text="Loading times…", font=FONT_LARGE, fg=ACCENT_MOON, bg=BG_CARD)
        self.lbl_state.pack(pady=6)
        self.lbl_error_hint = tk.Label(self.hero, text="", font=FONT_SMALL, fg=TEXT_DIM, bg=BG_CARD)
        self.lbl_error_hint.pack()

        # night progress
        ends = tk.Frame(self.hero, bg=BG_CARD)
        ends.pack(fill=tk.X, padx=16)
        self.lbl_night_start = tk.Label(ends, text="", font=FONT_SMALL, fg=TEXT_DIM, bg=BG_CARD)
        self.lbl_night_start.pack(side=tk.LEFT)
        self.lbl_night_end = tk.Label(ends, text="", font=FONT_SMALL, fg=TEXT_DIM, bg=BG_CARD)
        self.lbl_night_end.pack(side=tk.RIGHT)
        self.progress = tk.Canvas(
            self.hero, width=PROGRESS_W, height=PROGRESS_H, bg=PROGRESS_BG, highlightthickness=0,
        )
        self.progress.pack(pady=(2, 8))
        self._progress_bar = self.progress.create_rectangle(0, 0, 0, PROGRESS_H, fill=ACCENT_STAR, width=0)

        stats = tk.Frame(self.hero, bg=BG_CARD)
        stats.pack(fill=tk.X, padx=16, pady=(0, 8))
        self.lbl_duration = tk.Label(stats, text="", font=FONT_BODY, fg=TEXT_WHITE, bg=BG_CARD)
        self.lbl_duration.pack(side=tk.LEFT)
        self.lbl_middle = tk.Label(stats, text="", font=FONT_BODY, fg=TEXT_WHITE, bg=BG_CARD)
        self.lbl_middle.pack(side=tk.RIGHT)

        self.lbl_warning = tk.Label(self.hero, text="", font=FONT_SMALL, fg=TEXT_AMBER, bg=BG_CARD)
        self.lbl_warning.pack()

        # ── reference times ───────────────────────────────────────────────
        ref = tk.Frame(content, bg=BG_NIGHT)
        ref.pack(fill=tk.X, padx=14, pady=4)
        self.reference_labels = {}
        for name in NIGHT_PRAYERS:
            cell = tk.Frame(ref, bg=BG_CARD, padx=6, pady=4)
            cell.pack(side=tk.LEFT, expand=True, fill=tk.X, padx=2)
            tk.Label(cell, text=name, font=FONT_SMALL, fg=TEXT_DIM, bg=BG_CARD).pack()
            lbl = tk.Label(cell, text="--:--", font=FONT_LARGE, fg=TEXT_WHITE, bg=BG_CARD)
            lbl.pack()
            self.reference_labels[name] = lbl

        # ── virtue ────────────────────────────────────────────────────────
        text, source = random_virtue()
        tk.Label(
            content, text=f"“{text}”", font=FONT_SMALL, fg=TEXT_WHITE, bg=BG_NIGHT,
            wraplength=WINDOW_W - 40, justify=tk.CENTER,
        ).pack(pady=(10, 0), padx=14)
        tk.Label(content, text=format_attribution(source), font=FONT_SMALL, fg=TEXT_DIM, bg=BG_NIGHT).pack()

        # ── actions ───────────────────────────────────────────────────────
        actions = tk.Frame(content, bg=BG_NIGHT)
        actions.pack(pady=10)
        self.btn_copy = self._button(actions, "  ⧉ Copy summary  ", self._copy_summary, font=FONT_BODY)
        self.btn_copy.pack(side=tk.LEFT, padx=4)
        self.btn_format = self._button(actions, "", self._toggle_time_format, font=FONT_BODY)
        self.btn_format.pack(side=tk.LEFT, padx=4)
        self._update_format_button()

        self.lbl_diagnostics = tk.Label(
            content, text="", font=FONT_SMALL, fg=TEXT_DIM, bg=BG_NIGHT, justify=tk.CENTER,
        )
        self.lbl_diagnostics.pack(side=tk.BOTTOM, pady=(0, 6))
        self._update_diagnostics()

        # ── notification banner (hidden until a reminder fires) ───────────
        self.notif_frame = tk.Frame(content, bg=BG_ACTIVE, bd=1, relief=tk.RIDGE)
        self.lbl_notif_title = tk.Label(self.notif_frame, text="", font=FONT_BODY, fg=ACCENT_MOON, bg=BG_ACTIVE)
        self.lbl_notif_title.pack(pady=2)
        self.lbl_notif_msg = tk.Label(
            self.notif_frame, text="", font=FONT_SMALL, fg=TEXT_WHITE, bg=BG_ACTIVE,
            wraplength=WINDOW_W - 40,
        )
        self.lbl_notif_msg.pack(pady=(0, 4))

        # ── compact-mode content (hidden by default) ──────────────────────
        self._compact_content = tk.Frame(inner, bg=BG_NIGHT)
        self.lbl_compact = tk.Label(
            self._compact_content, text="🌙  --:--", font=FONT_LARGE, fg=ACCENT_MOON, bg=BG_NIGHT,
        )
        self.lbl_compact.pack(side=tk.LEFT, padx=8, pady=6, expand=True)
        self._button(self._compact_content, " ◻ ", self._toggle_compact, bg=BG_NIGHT).pack(
            side=tk.RIGHT, padx=6, pady=6
        )

    def _update_diagnostics(self):
        loc = self.settings.location
        self.lbl_diagnostics.config(
            text=build_diagnostics(loc.lat, loc.lng, self.settings.method_id, self.window)
        )

    def _location_text(self):
        loc = self.settings.location
        return f"📍 {self.address or coordinates_label(loc.lat, loc.lng)}"

    def _update_format_button(self):
        label = "12-hour" if self.settings.time_format == TIME_FORMAT_12H else "24-hour"
        self.btn_format.config(text=f"  ◷ {label}  ")

    # ──────────────────────────────────────────────────────────────────────
    # Clock
    # ──────────────────────────────────────────────────────────────────────
    def _now(self):
        """Wall-clock now in the location's zone (aware), or the machine's (naive)."""
        if self.tz is not None:
            return datetime.datetime.now(self.tz)
        return datetime.datetime.now()

    # ──────────────────────────────────────────────────────────────────────
    # Data loading
    # ──────────────────────────────────────────────────────────────────────
    def _load_night(self, key):
        """FetchCache loader; runs in a worker thread."""
        lat, lng, method_id = key
        return resolve_night_timings(lat, lng, method_id, self._now(), tz=self.tz)

    def _request_times(self, force: bool = False):
        if self.night is None:
            self.lbl_state.config(text="Loading times…", fg=ACCENT_MOON)
        self.cache.request(self.settings.fetch_key, self._on_fetch_result, force=force)

    def _on_fetch_result(self, key, night, error):
        """Called from a worker thread; hand over to the Tk thread."""
        self.root.after(0, lambda: self._apply_fetch_result(key, night, error))

    def _apply_fetch_result(self, key, night, error):
        if key != self.settings.fetch_key:
            return
        if error is not None:
            self._show_error(error)
            return
        if night == self.night and self.window is not None:
            return
        if self.tz is None and night.timezone:
            # Location saved without a zone: adopt the provider's and resolve again
            self.tz = _local_zone(night.timezone)
            if self.tz is not None:
                logger.info("Using provider timezone %s", night.timezone)
                self._request_times(force=True)
                return
        self.night = night
        if night.hijri.get("day"):
            hijri = night.hijri
            self.lbl_hijri.config(text=f"☪  {hijri['day']} {hijri['month_name']} {hijri['year']} H")
        self._recompute_window()

    def _show_error(self, error):
        self.night = None
        self.window = None
        self.ticker.stop()
        self._cancel_reminders()
        self.lbl_start.config(text="--:--")
        self.lbl_until.config(text="")
        self.progress.coords(self._progress_bar, 0, 0, 0, PROGRESS_H)
        self.lbl_state.config(text="Unable to load times", fg=TEXT_RED)
        if isinstance(error, DataUnavailableError):
            hint = "Check your connection or try another location"
        else:
            hint = str(error)[:60]
        self.lbl_error_hint.config(text=hint)
        self._update_diagnostics()
        self.lbl_compact.config(text="⚠  Unable to load times", fg=TEXT_RED)

    def _recompute_window(self):
        """Rebuild the window from the current night and settings, then restart the loops."""
        if self.night is None:
            return
        self.window = self.night.window(self.settings.convention, self.tz)
        fmt = self.settings.time_format
        window = self.window

        self.lbl_error_hint.config(text="")
        self.lbl_start.config(text=format_time(window.start, fmt))
        self.lbl_until.config(text=f"until {format_time(window.end, fmt)} (Fajr)")
        self.lbl_night_start.config(
            text=f"{window.convention.anchor_label} {format_time(window.night_start, fmt)}"
        )
        self.lbl_night_end.config(text=f"Fajr {format_time(window.end, fmt)}")
        self.lbl_duration.config(text=f"Night {format_duration(window.night_duration_minutes)}")
        self.lbl_middle.config(text=f"Middle {format_time(window.middle_of_night, fmt)}")
        self.lbl_warning.config(text=f"⚠ {window.warning}" if window.warning else "")

        raw = {"Maghrib": self.night.maghrib, "Isha": self.night.isha, "Fajr": self.night.fajr}
        for name, lbl in self.reference_labels.items():
            anchored = parse_time_of_day(raw[name], self.night.anchor_date)
            lbl.config(text=format_time(anchored, fmt))

        self._update_diagnostics()
        self._schedule_reminders()
        self.ticker.start()

    # ──────────────────────────────────────────────────────────────────────
    # Refresh loops
    # ──────────────────────────────────────────────────────────────────────
    def _tick_countdown(self):
        """Every second: window state and countdown."""
        if self.window is None:
            return
        status = project_state(self.window, self._now())
        if status.state is WindowState.PENDING:
            text = f"Starts in {status.countdown}"
            self.lbl_state.config(text=text, fg=ACCENT_STAR)
            self.hero.config(bg=BG_CARD)
            self.lbl_compact.config(text=f"🌙  {text}", fg=ACCENT_MOON)
        else:
            active = status.state is WindowState.ACTIVE
            self.lbl_state.config(text=STATE_TEXT[status.state], fg=ACCENT_MOON if active else TEXT_DIM)
            self.hero.config(bg=BG_ACTIVE if active else BG_CARD)
            self.lbl_compact.config(text=f"🌙  {STATE_TEXT[status.state]}", fg=ACCENT_MOON)

    def _tick_progress(self):
        """Every minute: night progress, and a refetch once tonight's window is over."""
        if self.window is None:
            return
        now = self._now()
        ratio = progress_ratio(self.window, now)
        self.progress.coords(self._progress_bar, 0, 0, PROGRESS_W * ratio, PROGRESS_H)
        if project_state(self.window, now).state is WindowState.ENDED:
            self._request_times()

    # ──────────────────────────────────────────────────────────────────────
    # Reminders
    # ──────────────────────────────────────────────────────────────────────
    def _cancel_reminders(self):
        for t in self.active_timers:
            t.cancel()
        self.active_timers.clear()

    def _schedule_reminders(self):
        self._cancel_reminders()
        self.active_timers.extend(
            schedule_window_reminders(self.window, self._now(), gui_callback=self._on_notification)
        )

    def _on_notification(self, title: str, message: str):
        """Called from a timer thread; schedule GUI update in main thread."""
        self.root.after(0, lambda: self._show_notif_banner(title, message))
        self.root.after(0, self.root.bell)

    def _show_notif_banner(self, title: str, message: str):
        self.lbl_notif_title.config(text=title)
        self.lbl_notif_msg.config(text=message)
        self.notif_frame.pack(fill=tk.X, padx=14, pady=4)
        self.root.after(15000, self.notif_frame.pack_forget)

    # ──────────────────────────────────────────────────────────────────────
    # Actions
    # ──────────────────────────────────────────────────────────────────────
    def _copy_summary(self):
        if self.window is None:
            return
        text = build_summary(self.window, self.settings.time_format, self.address or None)
        self.root.clipboard_clear()
        self.root.clipboard_append(text)
        self.btn_copy.config(text="  ✓ Copied  ", fg=ACCENT_MOON)
        self.root.after(2000, lambda: self.btn_copy.config(text="  ⧉ Copy summary  ", fg=ACCENT_STAR))

    def _toggle_time_format(self):
        self._persist(toggle_time_format)

    def _change_settings(self, **changes):
        self._persist(update_settings, **changes)

    def _persist(self, mutate, **changes):
        try:
            updated = mutate(self.settings, self.config_file, **changes)
        except OSError:
            logger.exception("Could not save settings to %s", self.config_file)
            return
        self._adopt(updated)

    def _adopt(self, updated):
        """Switch to freshly saved settings and refresh whatever depends on the change."""
        previous = self.settings
        self.settings = updated
        self._update_format_button()
        if updated.location != previous.location:
            self.tz = _local_zone(updated.location.timezone)
            self.address = updated.location.label or ""
            self.lbl_location.config(text=self._location_text(), fg=TEXT_DIM)
            if not self.address:
                self._resolve_address()
        if updated.fetch_key != previous.fetch_key:
            self.night = None
            self.window = None
            self.ticker.stop()
            self._update_diagnostics()
            self._request_times()
        else:
            self._recompute_window()

    def _resolve_address(self):
        loc = self.settings.location

        def work():
            label = reverse_geocode(loc.lat, loc.lng)
            self.root.after(0, lambda: self._set_address(loc, label))

        threading.Thread(target=work, daemon=True).start()

    def _set_address(self, loc, label):
        if loc != self.settings.location:
            return
        self.address = label
        self.lbl_location.config(text=self._location_text(), fg=TEXT_DIM)

    def _locate_device(self, on_error=None):
        """Look up the device location in the background and adopt it."""

        def work():
            try:
                found = get_device_location()
            except GeolocationDeniedError as exc:
                logger.warning("%s", exc)
                if on_error:
                    self.root.after(0, lambda: on_error(str(exc)))
                return
            self.root.after(0, lambda: self._change_settings(location=Location(
                lat=found["lat"], lng=found["lng"], label=found["label"], timezone=found["timezone"],
            )))

        threading.Thread(target=work, daemon=True).start()

    # ──────────────────────────────────────────────────────────────────────
    # Compact mode
    # ──────────────────────────────────────────────────────────────────────
    def _toggle_compact(self):
        x = self.root.winfo_x()
        y = self.root.winfo_y()
        if self._is_compact:
            self._compact_content.pack_forget()
            self._full_content.pack(fill=tk.BOTH, expand=True)
            self.root.geometry(f"{WINDOW_W}x{WINDOW_H}+{x}+{y}")
        else:
            self._full_content.pack_forget()
            self._compact_content.pack(fill=tk.BOTH, expand=True)
            self.root.geometry(f"{COMPACT_W}x{COMPACT_H}+{x}+{y}")
        self._is_compact = not self._is_compact

    # ──────────────────────────────────────────────────────────────────────
    # Settings dialog
    # ──────────────────────────────────────────────────────────────────────
    def _show_settings_dialog(self):
        if self._settings_dlg is not None and self._settings_dlg.winfo_exists():
            self._settings_dlg.lift()
            return
        dlg = tk.Toplevel(self.root)
        self._settings_dlg = dlg
        dlg.title("Settings")
        dlg.configure(bg=BG_NIGHT)
        dlg.geometry("400x480")
        dlg.resizable(False, False)
        dlg.attributes("-topmost", True)
        dlg.transient(self.root)

        tk.Label(dlg, text="⚙ Settings", font=FONT_TITLE, fg=ACCENT_MOON, bg=BG_NIGHT).pack(pady=(10, 6))

        # ── location ──────────────────────────────────────────────────────
        tk.Label(dlg, text="Location", font=FONT_BODY, fg=TEXT_WHITE, bg=BG_NIGHT, anchor="w").pack(
            fill=tk.X, padx=20
        )
        lbl_loc_error = tk.Label(dlg, text="", font=FONT_SMALL, fg=TEXT_RED, bg=BG_NIGHT, wraplength=360)

        def use_device():
            lbl_loc_error.config(text="Locating…", fg=TEXT_DIM)
            self._locate_device(on_error=lambda msg: lbl_loc_error.config(text=f"⚠ {msg}", fg=TEXT_RED))

        self._button(dlg, "  📍 Use my location  ", use_device).pack(padx=20, pady=2, anchor="w")

        query_var = tk.StringVar()
        tk.Entry(
            dlg, textvariable=query_var, font=FONT_SMALL, fg=TEXT_WHITE, bg=BG_CARD,
            insertbackground=TEXT_WHITE, relief=tk.FLAT,
        ).pack(fill=tk.X, padx=20, pady=2)
        results = tk.Listbox(
            dlg, height=5, font=FONT_SMALL, fg=TEXT_WHITE, bg=BG_CARD,
            selectbackground=BG_ACTIVE, relief=tk.FLAT, activestyle="none",
        )
        results.pack(fill=tk.X, padx=20)
        lbl_loc_error.pack(fill=tk.X, padx=20)
        candidates = []

        def show_results(query, found):
            if query != query_var.get().strip() or not dlg.winfo_exists():
                return
            candidates[:] = found
            results.delete(0, tk.END)
            for place in found:
                region = f" · {place.region_label}" if place.region_label else ""
                results.insert(tk.END, f"{place.name}{region}")
            lbl_loc_error.config(text="" if found else "No cities found", fg=TEXT_DIM)

        def run_search(query):
            def work():
                found = search_places(query)
                self.root.after(0, lambda: show_results(query, found))

            threading.Thread(target=work, daemon=True).start()

        debouncer = Debouncer(self.root.after, self.root.after_cancel, SEARCH_DEBOUNCE_MS, run_search)

        def on_query(*_):
            query = query_var.get().strip()
            results.delete(0, tk.END)
            candidates.clear()
            if len(query) < 2:
                debouncer.cancel()
                lbl_loc_error.config(text="")
                return
            lbl_loc_error.config(text="Scanning map…", fg=TEXT_DIM)
            debouncer.trigger(query)

        def on_select(_event):
            selection = results.curselection()
            if not selection or selection[0] >= len(candidates):
                return
            place = candidates[selection[0]]
            self._change_settings(location=Location(
                lat=place.latitude, lng=place.longitude, label=place.label, timezone=place.timezone,
            ))
            lbl_loc_error.config(text=f"✓ {place.label}", fg=ACCENT_MOON)

        query_var.trace_add("write", on_query)
        results.bind("<<ListboxSelect>>", on_select)

        # ── calculation method ────────────────────────────────────────────
        tk.Label(dlg, text="Calculation method", font=FONT_BODY, fg=TEXT_WHITE, bg=BG_NIGHT, anchor="w").pack(
            fill=tk.X, padx=20, pady=(10, 0)
        )
        method_var = tk.StringVar(value=method_name(self.settings.method_id))
        method_menu = tk.OptionMenu(dlg, method_var, *METHODS.values())
        method_menu.config(font=FONT_SMALL, fg=TEXT_WHITE, bg=BG_CARD, activebackground=BG_ACTIVE, bd=0)
        method_menu.pack(fill=tk.X, padx=20)

        def fill_methods(methods):
            if not dlg.winfo_exists():
                return
            menu = method_menu["menu"]
            menu.delete(0, tk.END)
            method_var.set(method_name(self.settings.method_id, methods))
            for method_id, name in methods.items():
                menu.add_command(label=name, command=lambda m=method_id, n=name: choose_method(m, n))

        def choose_method(method_id, name):
            method_var.set(name)
            self._change_settings(method_id=method_id)

        def load_methods():
            try:
                methods = fetch_calculation_methods()
            except DataUnavailableError as exc:
                logger.info("Using built-in method list: %s", exc)
                return
            self.root.after(0, lambda: fill_methods(methods))

        fill_methods(METHODS)
        threading.Thread(target=load_methods, daemon=True).start()

        # ── convention ────────────────────────────────────────────────────
        tk.Label(dlg, text="Qiyam convention", font=FONT_BODY, fg=TEXT_WHITE, bg=BG_NIGHT, anchor="w").pack(
            fill=tk.X, padx=20, pady=(10, 0)
        )
        convention_var = tk.StringVar(value=self.settings.convention.value)
        for convention, text in (
            (Convention.STANDARD, "Standard (Maghrib → Fajr)"),
            (Convention.ALTERNATIVE, "Alternative (Isha → Fajr)"),
        ):
            tk.Radiobutton(
                dlg, text=text, value=convention.value, variable=convention_var,
                command=lambda: self._change_settings(convention=convention_var.get()),
                font=FONT_SMALL, fg=TEXT_WHITE, bg=BG_NIGHT, selectcolor=BG_CARD,
                activebackground=BG_NIGHT, activeforeground=ACCENT_MOON, anchor="w",
            ).pack(fill=tk.X, padx=28)

        def close_dialog():
            debouncer.cancel()
            dlg.destroy()

        self._button(dlg, "  Done  ", close_dialog, font=FONT_BODY).pack(pady=12)
        dlg.protocol("WM_DELETE_WINDOW", close_dialog)


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────
def main():
    logging.basicConfig(
        level=os.environ.get("QIYAM_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    root = tk.Tk()
    QiyamApp(root)
    root.mainloop()


if __name__ == "__main__":
    main()
