import logging
import queue
import tkinter as tk

from logic.ai_client import CallSite
from logic.backend import get_ai_client, get_initial_state
from logic.settings import Settings, configure_logging
from ui.cases_frame import CasesFrame
from ui.theme import apply_styles

logger = logging.getLogger(__name__)

POLL_MS = 50


class App(tk.Tk):
    def __init__(self, settings: Settings):
        super().__init__()
        self.title("RadioArchive - Bibliothèque de cas")
        self.geometry("1280x800")
        self.minsize(960, 600)

        # App state
        self.settings = settings
        self.app_state = get_initial_state(settings)
        self.ai = get_ai_client(settings)
        self._callbacks = queue.Queue()
        # one ranking at a time, across page rebuilds
        self.search_site = CallSite(self.schedule)

        # Main container that hosts the catalog page
        self.container = tk.Frame(self)
        self.container.pack(fill="both", expand=True)
        self.container.grid_rowconfigure(0, weight=1)
        self.container.grid_columnconfigure(0, weight=1)
        self.page = None
        self._build_page()

        self.after(POLL_MS, self._drain_callbacks)
        self.after(50, self._maximize)

    # Worker threads hand results back through this; only the Tk loop touches widgets.
    def schedule(self, fn):
        self._callbacks.put(fn)

    def _drain_callbacks(self):
        try:
            while True:
                try:
                    fn = self._callbacks.get_nowait()
                except queue.Empty:
                    break
                try:
                    fn()
                except Exception:
                    logger.exception("[App] UI callback failed")
        finally:
            self.after(POLL_MS, self._drain_callbacks)

    # ---------- semantic search ----------
    def smart_search(self) -> bool:
        """Rank the collection against the current query; False when refused."""
        state = self.app_state
        if not state.query or not self.ai.available:
            return False
        query = state.query
        return self.search_site.start(self.ai.rank, query, list(state.cases),
                                      on_done=lambda result: self._on_ranked(query, result))

    def _on_ranked(self, query, result):
        self.app_state.apply_semantic_result(query, result)
        if self.page is not None:
            self.page.refresh()

    def _build_page(self):
        colors = apply_styles(self, self.app_state.theme)
        self.configure(bg=colors["BG"])
        if self.page is not None:
            self.page.destroy()
        self.page = CasesFrame(parent=self.container, controller=self, colors=colors)
        self.page.grid(row=0, column=0, sticky="nsew")
        self.page.on_show()

    def toggle_theme(self):
        self.app_state.toggle_theme()
        logger.info("[App] theme -> %s", self.app_state.theme)
        self._build_page()

    def _maximize(self):
        try:
            self.state("zoomed")                 # Windows
        except tk.TclError:
            try:
                self.attributes("-zoomed", True)  # some Linux WMs
            except tk.TclError:
                pass


def main():
    settings = Settings.from_env()
    configure_logging(settings)
    app = App(settings)
    app.mainloop()


if __name__ == "__main__":
    main()
