import tkinter as tk
from tkinter import messagebox, ttk

from model.models import TAB_FAVORITES, Specialty, format_name
from ui.case_dialog import CaseDialog
from ui.viewer_frame import ViewerFrame

STATS_TOP_SPECIALTIES = 6


class CasesFrame(tk.Frame):
    """Catalog page: tabs, search, case table, detail panel with the stack viewer."""

    def __init__(self, parent, controller, colors: dict):
        super().__init__(parent, bg=colors["BG"])
        self.controller = controller
        self.colors = colors
        self._stats_open = False

        root = ttk.Frame(self, style="App.TFrame")
        root.pack(fill="both", expand=True)

        # Top bar
        topbar = ttk.Frame(root, style="Toolbar.TFrame", padding=(16, 12))
        topbar.pack(fill="x")
        ttk.Label(topbar, text="RADIO Archive", style="H1.TLabel").pack(side="left")
        ttk.Button(topbar, text="+ Nouveau cas", style="Accent.TButton",
                   command=self.add_case).pack(side="right", padx=(6, 0))
        self.theme_btn = ttk.Button(topbar, style="Ghost.TButton", command=controller.toggle_theme)
        self.theme_btn.pack(side="right", padx=6)
        self.anon_btn = ttk.Button(topbar, style="Ghost.TButton", command=self.toggle_anonymized)
        self.anon_btn.pack(side="right", padx=6)
        self.stats_btn = ttk.Button(topbar, text="Insights", style="Ghost.TButton", command=self.toggle_stats)
        self.stats_btn.pack(side="right", padx=6)

        # Statistics (hidden until asked for)
        self.stats_card = ttk.Frame(root, style="Card.TFrame", padding=12)
        self.stats_anchor = ttk.Frame(root, style="App.TFrame")
        self.stats_anchor.pack(fill="x")

        # Tabs
        tabs_row = ttk.Frame(root, style="Toolbar.TFrame", padding=(16, 4))
        tabs_row.pack(fill="x")
        self.tabs_bar = ttk.Frame(tabs_row, style="Toolbar.TFrame")
        self.tabs_bar.pack(side="left", fill="x", expand=True)
        ttk.Button(tabs_row, text="⚙", width=3, style="Ghost.TButton",
                   command=self.open_settings).pack(side="right")

        # Search
        search = ttk.Frame(root, style="Toolbar.TFrame", padding=(16, 4))
        search.pack(fill="x")
        ttk.Label(search, text="🔎", style="Muted.TLabel").pack(side="left", padx=(0, 8))
        self.search_var = tk.StringVar(value=controller.app_state.query)
        self.search_entry = ttk.Entry(search, textvariable=self.search_var)
        self.search_entry.pack(side="left", fill="x", expand=True)
        self.smart_btn = ttk.Button(search, text="✨ IA", style="Ghost.TButton", command=self.smart_search)
        self.smart_btn.pack(side="left", padx=(8, 0))
        ttk.Button(search, text="Effacer", style="Ghost.TButton",
                   command=lambda: self.search_var.set("")).pack(side="left", padx=(4, 0))
        self.keywords_label = ttk.Label(root, text="", style="Muted.TLabel", padding=(16, 0))
        self.keywords_label.pack(fill="x")

        # Table + detail
        body = ttk.Frame(root, style="App.TFrame")
        body.pack(fill="both", expand=True, padx=16, pady=12)

        card = ttk.Frame(body, style="Card.TFrame", padding=12)
        card.pack(side="left", fill="both", expand=True)
        columns = ("fav", "name", "pid", "specialty", "difficulty", "modality", "diagnosis")
        self.tree = ttk.Treeview(card, columns=columns, show="headings", selectmode="browse")
        headers = {"fav": "★", "name": "Patient", "pid": "IPP", "specialty": "Spécialité",
                   "difficulty": "Niveau", "modality": "Modalité", "diagnosis": "Diagnostic"}
        widths = {"fav": 36, "name": 180, "pid": 100, "specialty": 140,
                  "difficulty": 110, "modality": 110, "diagnosis": 260}
        for col in columns:
            self.tree.heading(col, text=headers[col])
            self.tree.column(col, stretch=col in ("name", "diagnosis"), width=widths[col])
        self.tree.tag_configure("evenrow", background=colors["ROW_EVEN"])
        self.tree.tag_configure("oddrow", background=colors["ROW_ODD"])
        yscroll = ttk.Scrollbar(card, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=yscroll.set)
        self.tree.pack(side="left", fill="both", expand=True)
        yscroll.pack(side="right", fill="y")
        self.empty_label = ttk.Label(card, text="Aucun dossier trouvé.", style="CardMuted.TLabel")

        self.detail = ttk.Frame(body, style="Card.TFrame", padding=12, width=520)
        self.detail_title = ttk.Label(self.detail, text="", style="CardTitle.TLabel")
        self.detail_title.pack(anchor="w")
        self.detail_meta = ttk.Label(self.detail, text="", style="CardMuted.TLabel")
        self.detail_meta.pack(anchor="w", pady=(0, 6))
        self.detail_reason = ttk.Label(self.detail, text="", style="Card.TLabel", wraplength=480)
        self.detail_reason.pack(anchor="w")
        self.detail_text = tk.Text(self.detail, height=7, width=60, wrap="word", relief="flat",
                                   bg=colors["FIELD_BG"], fg=colors["FG"])
        self.detail_text.pack(fill="x", pady=(6, 6))
        actions = ttk.Frame(self.detail, style="Card.TFrame")
        actions.pack(fill="x", pady=(0, 6))
        self.fav_btn = ttk.Button(actions, style="Ghost.TButton", command=self.toggle_favorite)
        self.fav_btn.pack(side="left")
        ttk.Button(actions, text="Supprimer", style="Danger.TButton",
                   command=self.delete_case).pack(side="right")
        self.viewer = ViewerFrame(self.detail, colors)
        self.viewer.pack(fill="both", expand=True)
        self._viewer_case_id = None

        # bindings
        self.search_var.trace_add("write", lambda *_: self._on_query_changed())
        self.search_entry.bind("<Return>", lambda e: self.smart_search())
        self.tree.bind("<<TreeviewSelect>>", lambda e: self._on_select())
        self.tree.bind("<Return>", lambda e: self._on_select())
        self.tree.bind("<Delete>", lambda e: self.delete_case())
        self.tree.bind("f", lambda e: self.toggle_favorite())
        self.winfo_toplevel().bind("<Control-n>", lambda e: self.add_case())

    # ---------- lifecycle ----------
    def on_show(self):
        self.refresh()
        self.search_entry.focus_set()

    # ---------- rendering ----------
    def refresh(self):
        state = self.controller.app_state
        view = state.view()

        self.anon_btn.config(text="🙈 Anonyme" if state.anonymized else "👁 Nominatif")
        self.theme_btn.config(text="☀" if state.theme == "dark" else "☾")
        searchable = state.query and self.controller.ai.available and not self.controller.search_site.busy
        self.smart_btn.config(state="normal" if searchable else "disabled")

        self._render_tabs(view)
        self._render_table(view)
        self._render_keywords()
        if self._stats_open:
            self._render_stats(view.stats)
        self._render_detail(view)

    def _render_tabs(self, view):
        state = self.controller.app_state
        for w in self.tabs_bar.winfo_children():
            w.destroy()
        for tab in state.tabs:
            info = view.tab_counts[tab]
            badge = f"{info.visible}/{info.total}" if view.show_ratio else f"{info.total}"
            label = f"★ {tab}" if tab == TAB_FAVORITES and state.favorites else tab
            style = "ActiveTab.TButton" if tab == state.active_tab else "Tab.TButton"
            ttk.Button(self.tabs_bar, text=f"{label}  {badge}", style=style,
                       command=lambda t=tab: self.select_tab(t)).pack(side="left", padx=(0, 4))

    def _render_table(self, view):
        state = self.controller.app_state
        self.tree.delete(*self.tree.get_children())
        for i, case in enumerate(view.cases):
            tag = "evenrow" if i % 2 == 0 else "oddrow"
            self.tree.insert(
                "", "end", iid=case.id,
                values=("★" if state.is_favorite(case.id) else "",
                        format_name(case.last_name, case.first_name, view.anonymized),
                        case.patient_id, case.specialty.value, case.difficulty.value,
                        case.modality.value, case.diagnosis),
                tags=(tag,),
            )
        if view.cases:
            self.empty_label.place_forget()
        else:
            self.empty_label.place(relx=0.5, rely=0.5, anchor="c")
        if state.expanded_case_id and self.tree.exists(state.expanded_case_id):
            self.tree.selection_set(state.expanded_case_id)

    def _render_keywords(self):
        result = self.controller.app_state.semantic_result
        if result is None:
            text = "Recherche IA en cours…" if self.controller.search_site.busy else ""
        elif result.suggested_keywords:
            text = "Mots-clés IA : " + ", ".join(result.suggested_keywords)
        else:
            text = f"IA : {len(result.matches)} cas pertinent(s)"
        self.keywords_label.config(text=text)

    def _render_stats(self, stats):
        for w in self.stats_card.winfo_children():
            w.destroy()
        groups = (
            ("Spécialités", stats.specialty[:STATS_TOP_SPECIALTIES]),
            ("Difficulté", stats.difficulty),
            ("Modalités", stats.modality),
        )
        for col, (title, rows) in enumerate(groups):
            box = ttk.Frame(self.stats_card, style="Card.TFrame", padding=(8, 0))
            box.grid(row=0, column=col, sticky="nsew")
            self.stats_card.grid_columnconfigure(col, weight=1)
            ttk.Label(box, text=title, style="CardTitle.TLabel").pack(anchor="w")
            for name, count in rows:
                ttk.Label(box, text=f"{name}  {count}", style="Card.TLabel").pack(anchor="w")
                ttk.Progressbar(box, maximum=max(stats.total, 1), value=count,
                                style="Blue.Horizontal.TProgressbar").pack(fill="x", pady=(0, 4))
        ttk.Label(self.stats_card, text=f"{stats.total} dossiers", style="CardMuted.TLabel")\
            .grid(row=1, column=0, sticky="w", pady=(6, 0))

    def _render_detail(self, view):
        state = self.controller.app_state
        case = next((c for c in view.cases if c.id == state.expanded_case_id), None)
        if case is None:
            self.detail.pack_forget()
            self._viewer_case_id = None
            return
        self.detail.pack(side="left", fill="both", padx=(12, 0))
        self.detail_title.config(text=format_name(case.last_name, case.first_name, view.anonymized))
        self.detail_meta.config(
            text=f"IPP {case.patient_id}  ·  {case.specialty.value}  ·  {case.difficulty.value}  ·  {case.modality.value}"
        )
        reason = state.semantic_result.reason_for(case.id) if state.semantic_result else None
        self.detail_reason.config(text=f"✨ {reason}" if reason else "")
        self.detail_text.config(state="normal")
        self.detail_text.delete("1.0", "end")
        self.detail_text.insert("end", f"Diagnostic\n{case.diagnosis}\n\nNote clinique\n{case.clinical_note}")
        self.detail_text.config(state="disabled")
        self.fav_btn.config(text="★ Favori" if state.is_favorite(case.id) else "☆ Ajouter aux favoris")
        if self._viewer_case_id != case.id:
            self._viewer_case_id = case.id
            self.viewer.show_series(case.series)

    # ---------- actions ----------
    def _on_query_changed(self):
        self.controller.app_state.set_query(self.search_var.get())
        self.refresh()

    def _on_select(self):
        sel = self.tree.selection()
        if not sel:
            return
        state = self.controller.app_state
        if state.expanded_case_id != sel[0]:
            state.toggle_expanded(sel[0])
            self.refresh()

    def select_tab(self, tab):
        self.controller.app_state.set_active_tab(tab)
        self.refresh()

    def toggle_anonymized(self):
        self.controller.app_state.toggle_anonymized()
        self.refresh()

    def toggle_stats(self):
        self._stats_open = not self._stats_open
        if self._stats_open:
            self.stats_card.pack(in_=self.stats_anchor, fill="x", padx=16, pady=(0, 8))
        else:
            self.stats_card.pack_forget()
        self.stats_btn.config(text="Masquer insights" if self._stats_open else "Insights")
        self.refresh()

    def smart_search(self):
        if self.controller.smart_search():
            self.refresh()

    def toggle_favorite(self):
        case_id = self.controller.app_state.visible_expanded_id()
        if case_id:
            self.controller.app_state.toggle_favorite(case_id)
            self.refresh()

    def delete_case(self):
        state = self.controller.app_state
        case_id = state.visible_expanded_id()
        if not case_id:
            return

        def confirm(case):
            return messagebox.askyesno(
                "Confirmer la suppression",
                f"Supprimer définitivement le cas {case.patient_id} ?", parent=self)

        if state.delete_case(case_id, confirm):
            self.refresh()

    def add_case(self):
        dlg = CaseDialog(self, self.colors, self.controller.ai, self.controller.schedule)
        self.wait_window(dlg)
        if dlg.result:
            case = self.controller.app_state.create_case(**dlg.result.to_fields())
            self.controller.app_state.toggle_expanded(case.id)
            self.refresh()

    def open_settings(self):
        SettingsDialog(self, self.controller.app_state, on_change=self.refresh)


class SettingsDialog(tk.Toplevel):
    """Which specialties get a tab."""

    def __init__(self, parent, state, on_change):
        super().__init__(parent)
        self.title("Spécialités affichées")
        self.transient(parent)
        self.state_ref = state
        self.on_change = on_change

        frame = ttk.Frame(self, style="Card.TFrame", padding=16)
        frame.pack(fill="both", expand=True)
        ttk.Label(frame, text="Onglets visibles", style="CardTitle.TLabel").pack(anchor="w", pady=(0, 8))
        self.vars = {}
        for s in Specialty:
            var = tk.BooleanVar(value=s in state.visible_specialties)
            self.vars[s] = var
            ttk.Checkbutton(frame, text=s.value, variable=var,
                            command=lambda s=s: self._toggle(s)).pack(anchor="w", pady=2)
        ttk.Button(frame, text="Valider la configuration", style="Accent.TButton",
                   command=self.destroy).pack(fill="x", pady=(12, 0))
        self.bind("<Escape>", lambda e: self.destroy())

    def _toggle(self, specialty):
        self.state_ref.toggle_specialty_visibility(specialty)
        self.vars[specialty].set(specialty in self.state_ref.visible_specialties)
        self.on_change()
