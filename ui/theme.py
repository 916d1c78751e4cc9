from tkinter import ttk

PALETTES = {
    "dark": {
        "PRIMARY": "#0ea5e9",   # cyan-500
        "BG": "#0b1220",        # slate-950
        "CARD_BG": "#0f172a",   # slate-900
        "FG": "#e5e7eb",        # gray-200
        "MUTED": "#94a3b8",     # gray-400
        "FIELD_BG": "#111827",  # gray-900
        "BORDER": "#1f2937",    # slate-800
        "DANGER": "#ef4444",    # red-500
        "STAR": "#facc15",      # yellow-400
        "ROW_EVEN": "#0b1220",
        "ROW_ODD": "#0e1627",
    },
    "light": {
        "PRIMARY": "#2563eb",   # blue-600
        "BG": "#f8fafc",        # slate-50
        "CARD_BG": "#ffffff",
        "FG": "#0f172a",        # slate-900
        "MUTED": "#64748b",     # slate-500
        "FIELD_BG": "#f1f5f9",  # slate-100
        "BORDER": "#e2e8f0",    # slate-200
        "DANGER": "#e11d48",    # rose-600
        "STAR": "#eab308",      # yellow-500
        "ROW_EVEN": "#ffffff",
        "ROW_ODD": "#f8fafc",
    },
}


def palette(theme: str) -> dict:
    return PALETTES.get(theme, PALETTES["light"])


def apply_styles(widget, theme: str) -> dict:
    """Configure every ttk style the app uses; returns the palette."""
    p = palette(theme)
    style = ttk.Style(widget)
    try:
        style.theme_use("clam")
    except Exception:
        pass

    style.configure("App.TFrame", background=p["BG"])
    style.configure("Toolbar.TFrame", background=p["BG"])
    style.configure("Card.TFrame", background=p["CARD_BG"])
    style.configure("H1.TLabel", background=p["BG"], foreground=p["FG"], font=("Segoe UI", 18, "bold"))
    style.configure("Muted.TLabel", background=p["BG"], foreground=p["MUTED"])
    style.configure("Card.TLabel", background=p["CARD_BG"], foreground=p["FG"])
    style.configure("CardMuted.TLabel", background=p["CARD_BG"], foreground=p["MUTED"])
    style.configure("CardTitle.TLabel", background=p["CARD_BG"], foreground=p["FG"],
                    font=("Segoe UI", 12, "bold"))
    style.configure("Field.TLabel", background=p["CARD_BG"], foreground=p["FG"],
                    font=("Segoe UI", 10, "bold"))

    style.configure("TEntry",
                    fieldbackground=p["FIELD_BG"], foreground=p["FG"],
                    insertcolor=p["FG"], bordercolor=p["BORDER"], padding=8)
    style.map("TEntry",
              fieldbackground=[("disabled", p["BORDER"]), ("!disabled", p["FIELD_BG"])],
              bordercolor=[("focus", p["PRIMARY"]), ("!focus", p["BORDER"])])

    style.configure("Accent.TButton", background=p["PRIMARY"], foreground="#0b1220",
                    padding=(14, 8), borderwidth=0)
    style.map("Accent.TButton",
              background=[("active", "#22d3ee"), ("!active", p["PRIMARY"])],
              foreground=[("disabled", "#cbd5e1"), ("!disabled", "#0b1220")])

    style.configure("Ghost.TButton", background=p["BG"], foreground=p["MUTED"],
                    padding=(12, 8), borderwidth=0)
    style.map("Ghost.TButton",
              background=[("active", p["FIELD_BG"])],
              foreground=[("active", p["FG"]), ("!active", p["MUTED"])])

    style.configure("Tab.TButton", background=p["BG"], foreground=p["MUTED"],
                    padding=(14, 8), borderwidth=0)
    style.map("Tab.TButton", background=[("active", p["FIELD_BG"])])
    style.configure("ActiveTab.TButton", background=p["FG"], foreground=p["BG"],
                    padding=(14, 8), borderwidth=0)

    style.configure("Danger.TButton", background=p["DANGER"], foreground="#0b1220",
                    padding=(12, 8), borderwidth=0)
    style.map("Danger.TButton",
              background=[("active", "#f87171"), ("!active", p["DANGER"])])

    style.configure("Treeview",
                    background=p["CARD_BG"], fieldbackground=p["CARD_BG"], foreground=p["FG"],
                    bordercolor=p["BORDER"], rowheight=28)
    style.configure("Treeview.Heading",
                    background=p["BG"], foreground=p["FG"], bordercolor=p["BORDER"],
                    font=("Segoe UI", 10, "bold"))
    style.configure("Blue.Horizontal.TProgressbar", troughcolor=p["FIELD_BG"],
                    background=p["PRIMARY"], bordercolor=p["BORDER"],
                    lightcolor=p["PRIMARY"], darkcolor=p["PRIMARY"])
    return p
