import logging
import tkinter as tk
from tkinter import ttk

from PIL import Image, ImageTk

from logic.image_utils import data_url_to_pil
from logic.viewer_state import ViewerState

logger = logging.getLogger(__name__)

CTRL_MASK = 0x0004
WHEEL_NOTCH = 120


class StackCanvas(tk.Canvas):
    """Draws the current slice of a ViewerState and feeds it mouse events."""

    def __init__(self, parent, state: ViewerState, on_change, **kw):
        super().__init__(parent, bg="black", highlightthickness=0, **kw)
        self.state = state
        self._on_change = on_change
        self._tkimg = None
        self._decoded = {}        # (series idx, slice idx) -> PIL image

        self.bind("<Configure>", lambda e: self.redraw())
        self.bind("<MouseWheel>", self._on_wheel)                                  # Windows/macOS
        self.bind("<Button-4>", lambda e: self._wheel(-WHEEL_NOTCH, e.state))      # X11 up
        self.bind("<Button-5>", lambda e: self._wheel(+WHEEL_NOTCH, e.state))      # X11 down
        self.bind("<ButtonPress-1>", self._on_press)
        self.bind("<B1-Motion>", self._on_motion)
        self.bind("<ButtonRelease-1>", lambda e: self._release())
        self.bind("<Leave>", lambda e: self._release())

    # ---------- events ----------
    def _on_wheel(self, event):
        self._wheel(-event.delta, event.state)

    def _wheel(self, delta_y, modifiers):
        self.state.wheel(delta_y, modifier=bool(modifiers & CTRL_MASK))
        self._on_change()

    def _on_press(self, event):
        self.focus_set()
        self.state.pointer_down(event.x, event.y)
        self.configure(cursor="fleur" if self.state.is_dragging else "")

    def _on_motion(self, event):
        if self.state.is_dragging:
            self.state.pointer_move(event.x, event.y)
            self.redraw()

    def _release(self):
        self.state.pointer_up()
        self.configure(cursor="")

    # ---------- rendering ----------
    def _current_pil(self):
        key = (self.state.active_series_index, self.state.slice_index)
        if key not in self._decoded:
            self._decoded[key] = data_url_to_pil(self.state.current_image)
        return self._decoded[key]

    def forget_images(self):
        self._decoded.clear()

    def redraw(self):
        self.delete("all")
        cw = max(self.winfo_width(), 1)
        ch = max(self.winfo_height(), 1)
        if self.state.current_image is None:
            self.create_text(cw // 2, ch // 2, text="Imagerie non disponible.", fill="#64748b")
            return
        try:
            img = self._current_pil()
        except (ValueError, OSError) as e:
            logger.warning("Cannot decode slice %s: %s", self.state.slice_label(), e)
            self.create_text(cw // 2, ch // 2, text="[image illisible]", fill="white")
            return

        fit = min(cw / img.width, ch / img.height)
        scale = max(0.01, fit * self.state.display_zoom)
        w = max(1, int(img.width * scale))
        h = max(1, int(img.height * scale))
        self._tkimg = ImageTk.PhotoImage(img.resize((w, h), Image.LANCZOS))
        px, py = self.state.pan
        self.create_image(cw // 2 + px, ch // 2 + py, anchor="center", image=self._tkimg)


class ViewerFrame(tk.Frame):
    """
    Stack viewer for one case's series:
      • wheel = previous/next slice, Ctrl+wheel = zoom
      • drag to pan once zoomed in
      • series selector, zoom buttons, reset, fullscreen
    """

    def __init__(self, parent, colors: dict):
        super().__init__(parent, bg=colors["CARD_BG"])
        self.colors = colors
        self.state = ViewerState()
        self._fullscreen = None

        top = ttk.Frame(self, style="Card.TFrame")
        top.pack(fill="x")
        self.series_label = ttk.Label(top, text="-", style="CardTitle.TLabel")
        self.series_label.pack(side="left")
        self.slice_label = ttk.Label(top, text="", style="CardMuted.TLabel")
        self.slice_label.pack(side="left", padx=(12, 0))
        self.fs_btn = ttk.Button(top, text="⛶ Plein écran", style="Ghost.TButton", command=self.open_fullscreen)
        self.fs_btn.pack(side="right")

        self.canvas = StackCanvas(self, self.state, on_change=self.refresh, height=360)
        self.canvas.pack(fill="both", expand=True, pady=(6, 6))

        tb = ttk.Frame(self, style="Card.TFrame")
        tb.pack(fill="x")
        self.prev_btn = ttk.Button(tb, text="▲", width=3, style="Ghost.TButton",
                                   command=lambda: self._step(-1))
        self.next_btn = ttk.Button(tb, text="▼", width=3, style="Ghost.TButton",
                                   command=lambda: self._step(+1))
        self.prev_btn.pack(side="left")
        self.next_btn.pack(side="left")
        self.progress = ttk.Progressbar(tb, maximum=1.0, style="Blue.Horizontal.TProgressbar", length=120)
        self.progress.pack(side="left", padx=8)
        ttk.Button(tb, text="−", width=3, style="Ghost.TButton", command=self._zoom_out).pack(side="right")
        ttk.Button(tb, text="+", width=3, style="Ghost.TButton", command=self._zoom_in).pack(side="right")
        ttk.Button(tb, text="⟲", width=3, style="Ghost.TButton", command=self._reset).pack(side="right")
        self.zoom_label = ttk.Label(tb, text="100%", style="CardMuted.TLabel")
        self.zoom_label.pack(side="right", padx=8)

        self.series_bar = ttk.Frame(self, style="Card.TFrame")
        self.series_bar.pack(fill="x", pady=(6, 0))

        self.canvas.bind("<Up>", lambda e: self._step(-1))
        self.canvas.bind("<Down>", lambda e: self._step(+1))

    # ---------- lifecycle ----------
    def show_series(self, series):
        """Mount a new series list: back to series 0, slice 0, identity view."""
        self.close_fullscreen()
        self.state = ViewerState(series=list(series))
        self.canvas.state = self.state
        self.canvas.forget_images()
        for w in self.series_bar.winfo_children():
            w.destroy()
        for i, name in enumerate(self.state.series_names):
            ttk.Button(self.series_bar, text=f"▤ {name}", style="Tab.TButton",
                       command=lambda i=i: self._select_series(i)).pack(side="left", padx=(0, 4))
        self.refresh()

    def refresh(self):
        s = self.state
        empty = s.slice_count == 0
        self.series_label.config(text=s.active_series.name if s.active_series else "Imagerie")
        self.slice_label.config(text="" if empty else s.slice_label())
        self.zoom_label.config(text=f"{int(round(s.zoom * 100))}%")
        self.progress.configure(value=0 if empty else (s.slice_index + 1) / s.slice_count)
        nav = "disabled" if s.slice_count <= 1 else "normal"
        self.prev_btn.config(state=nav)
        self.next_btn.config(state=nav)
        self.fs_btn.config(state="disabled" if empty else "normal")
        for i, btn in enumerate(self.series_bar.winfo_children()):
            btn.configure(style="ActiveTab.TButton" if i == s.active_series_index else "Tab.TButton")
        self.canvas.redraw()
        if self._fullscreen is not None:
            self._fullscreen.refresh()

    # ---------- actions ----------
    def _select_series(self, index):
        self.state.select_series(index)
        self.refresh()

    def _step(self, step):
        self.state.step_slice(step)
        self.refresh()

    def _zoom_in(self):
        self.state.zoom_in()
        self.refresh()

    def _zoom_out(self):
        self.state.zoom_out()
        self.refresh()

    def _reset(self):
        self.state.reset_view()
        self.refresh()

    def open_fullscreen(self):
        if self._fullscreen is not None or self.state.slice_count == 0:
            return
        self.state.enter_fullscreen()
        self._fullscreen = FullscreenViewer(self, on_close=self.close_fullscreen)
        self.refresh()

    def close_fullscreen(self):
        if self._fullscreen is None:
            return
        win, self._fullscreen = self._fullscreen, None
        self.state.exit_fullscreen()
        win.destroy()
        self.refresh()


class FullscreenViewer(tk.Toplevel):
    """Same ViewerState, magnified, on a fullscreen black window."""

    def __init__(self, viewer: ViewerFrame, on_close):
        super().__init__(viewer)
        self.viewer = viewer
        self.configure(bg="black")
        self.title("Diagnostic")
        try:
            self.attributes("-fullscreen", True)
        except tk.TclError:
            self.state("zoomed")

        head = tk.Frame(self, bg="black")
        head.pack(fill="x", padx=24, pady=16)
        self.info = tk.Label(head, text="", bg="black", fg="#60a5fa", font=("Segoe UI", 11, "bold"))
        self.info.pack(side="left")
        ttk.Button(head, text="✕", style="Ghost.TButton", command=on_close).pack(side="right")
        ttk.Button(head, text="⟲ Reset vue", style="Ghost.TButton",
                   command=viewer._reset).pack(side="right", padx=8)

        self.canvas = StackCanvas(self, viewer.state, on_change=viewer.refresh)
        self.canvas.pack(fill="both", expand=True)

        foot = tk.Frame(self, bg="black")
        foot.pack(fill="x", pady=16)
        ttk.Button(foot, text="◀", style="Ghost.TButton", command=lambda: viewer._step(-1)).pack(side="left", padx=24)
        ttk.Button(foot, text="▶", style="Ghost.TButton", command=lambda: viewer._step(+1)).pack(side="right", padx=24)

        self.bind("<Escape>", lambda e: on_close())
        self.protocol("WM_DELETE_WINDOW", on_close)
        self.canvas.focus_set()

    def refresh(self):
        s = self.viewer.state
        name = s.active_series.name if s.active_series else ""
        self.info.config(text=f"Série : {name} • {s.slice_label()}")
        self.canvas.redraw()
