import logging
import os
import tkinter as tk
from tkinter import filedialog, messagebox, simpledialog, ttk

from logic.ai_client import AIProxyClient, CallSite
from logic.image_utils import file_to_data_urls
from model.forms import CaseDraft
from model.models import Difficulty, Modality, Specialty

logger = logging.getLogger(__name__)


_last_import_dir = None


def _import_dir() -> str:
    """Last folder images were imported from, else a likely DICOM/export folder."""
    candidates = [
        _last_import_dir,
        os.path.join(os.getcwd(), "samples"),
        os.path.expanduser("~/Pictures"),
    ]
    for p in candidates:
        if p and os.path.isdir(p):
            return p
    return os.getcwd()


class CaseDialog(tk.Toplevel):
    """New-case form with AI pre-fill and image series upload."""

    def __init__(self, parent, colors: dict, ai: AIProxyClient, schedule):
        super().__init__(parent)
        self.title("Édition du cas clinique")
        self.result = None
        self.draft = CaseDraft()
        self.ai = ai
        self.analyze_site = CallSite(schedule)
        self.transient(parent)
        self.grab_set()
        self.configure(bg=colors["BG"])

        outer = ttk.Frame(self, style="Card.TFrame", padding=16)
        outer.pack(fill="both", expand=True)
        ttk.Label(outer, text="Édition du cas clinique", style="CardTitle.TLabel").pack(anchor="w", pady=(0, 8))

        form = ttk.Frame(outer, style="Card.TFrame")
        form.pack(fill="both", expand=True)
        form.grid_columnconfigure(0, weight=1)
        form.grid_columnconfigure(1, weight=1)
        form.grid_columnconfigure(2, weight=1)

        # Identity
        ttk.Label(form, text="Nom", style="Field.TLabel").grid(row=0, column=0, sticky="w")
        ttk.Label(form, text="Prénom", style="Field.TLabel").grid(row=0, column=1, sticky="w")
        ttk.Label(form, text="Identifiant patient (ID / IPP)", style="Field.TLabel").grid(row=0, column=2, sticky="w")
        self.last_var = tk.StringVar()
        self.first_var = tk.StringVar()
        self.pid_var = tk.StringVar()
        last_entry = ttk.Entry(form, textvariable=self.last_var)
        last_entry.grid(row=1, column=0, sticky="ew", padx=(0, 6))
        ttk.Entry(form, textvariable=self.first_var).grid(row=1, column=1, sticky="ew", padx=6)
        ttk.Entry(form, textvariable=self.pid_var).grid(row=1, column=2, sticky="ew", padx=(6, 0))

        # Classification
        ttk.Label(form, text="Spécialité", style="Field.TLabel").grid(row=2, column=0, sticky="w", pady=(12, 2))
        ttk.Label(form, text="Difficulté", style="Field.TLabel").grid(row=2, column=1, sticky="w", pady=(12, 2))
        ttk.Label(form, text="Modalité", style="Field.TLabel").grid(row=2, column=2, sticky="w", pady=(12, 2))
        self.specialty_var = tk.StringVar(value=self.draft.specialty.value)
        self.difficulty_var = tk.StringVar(value=self.draft.difficulty.value)
        self.modality_var = tk.StringVar(value=self.draft.modality.value)
        ttk.Combobox(form, textvariable=self.specialty_var, values=[s.value for s in Specialty],
                     state="readonly").grid(row=3, column=0, sticky="ew", padx=(0, 6))
        ttk.Combobox(form, textvariable=self.difficulty_var, values=[d.value for d in Difficulty],
                     state="readonly").grid(row=3, column=1, sticky="ew", padx=6)
        ttk.Combobox(form, textvariable=self.modality_var, values=[m.value for m in Modality],
                     state="readonly").grid(row=3, column=2, sticky="ew", padx=(6, 0))

        # Clinical note + AI
        note_head = ttk.Frame(form, style="Card.TFrame")
        note_head.grid(row=4, column=0, columnspan=3, sticky="ew", pady=(12, 2))
        ttk.Label(note_head, text="Note clinique", style="Field.TLabel").pack(side="left")
        self.analyze_btn = ttk.Button(note_head, text="✨ Analyser (IA)", style="Ghost.TButton",
                                      command=self._analyze)
        self.analyze_btn.pack(side="right")
        if not self.ai.available:
            self.analyze_btn.config(state="disabled")
        self.ai_status = ttk.Label(note_head, text="", style="CardMuted.TLabel")
        self.ai_status.pack(side="right", padx=8)
        self.note_text = self._text(form, colors, height=5)
        self.note_text.grid(row=5, column=0, columnspan=3, sticky="ew")

        ttk.Label(form, text="Diagnostic", style="Field.TLabel").grid(row=6, column=0, sticky="w", pady=(12, 2))
        self.diag_text = self._text(form, colors, height=3)
        self.diag_text.grid(row=7, column=0, columnspan=3, sticky="ew")

        # Series
        ttk.Label(form, text="Séries d'images", style="Field.TLabel").grid(row=8, column=0, sticky="w", pady=(12, 2))
        list_row = ttk.Frame(form, style="Card.TFrame")
        list_row.grid(row=9, column=0, columnspan=3, sticky="nsew")
        form.grid_rowconfigure(9, weight=1)
        self.lb = tk.Listbox(list_row, height=5, activestyle="none",
                             bg=colors["FIELD_BG"], fg=colors["FG"], highlightthickness=0,
                             selectbackground=colors["BORDER"], selectforeground=colors["FG"])
        self.lb.pack(side="left", fill="both", expand=True)
        btns = ttk.Frame(list_row, style="Card.TFrame")
        btns.pack(side="left", padx=8, fill="y")
        ttk.Button(btns, text="Ajouter…", style="Ghost.TButton", command=self._add_series).pack(fill="x", pady=2)
        ttk.Button(btns, text="Renommer", style="Ghost.TButton", command=self._rename_series).pack(fill="x", pady=2)
        ttk.Button(btns, text="Retirer", style="Ghost.TButton", command=self._remove_series).pack(fill="x", pady=2)

        # Actions
        actions = ttk.Frame(outer, style="Card.TFrame")
        actions.pack(fill="x", pady=(12, 0))
        ttk.Button(actions, text="Annuler", style="Ghost.TButton", command=self._cancel).pack(side="right", padx=6)
        ttk.Button(actions, text="Enregistrer", style="Accent.TButton", command=self._save).pack(side="right")

        self.bind("<Escape>", lambda e: self._cancel())
        self.bind("<Control-s>", lambda e: self._save())
        self.protocol("WM_DELETE_WINDOW", self._cancel)

        self.after(50, lambda: last_entry.focus_set())
        self._center_on_parent(parent)
        self.minsize(720, 560)

    # ---------- Helpers ----------
    @staticmethod
    def _text(parent, colors, height):
        return tk.Text(parent, height=height, wrap="word", relief="flat",
                       bg=colors["FIELD_BG"], fg=colors["FG"], insertbackground=colors["FG"])

    def _center_on_parent(self, parent):
        try:
            self.update_idletasks()
            x = parent.winfo_rootx() + (parent.winfo_width() - self.winfo_width()) // 2
            y = parent.winfo_rooty() + (parent.winfo_height() - self.winfo_height()) // 2
            self.geometry(f"+{x}+{y}")
        except tk.TclError:
            pass

    def _pull(self):
        """Widgets -> draft."""
        d = self.draft
        d.last_name = self.last_var.get()
        d.first_name = self.first_var.get()
        d.patient_id = self.pid_var.get()
        d.specialty = Specialty(self.specialty_var.get())
        d.difficulty = Difficulty(self.difficulty_var.get())
        d.modality = Modality(self.modality_var.get())
        d.clinical_note = self.note_text.get("1.0", "end-1c")
        d.diagnosis = self.diag_text.get("1.0", "end-1c")

    def _push_classification(self):
        """Draft -> the widgets an AI suggestion may change."""
        self.specialty_var.set(self.draft.specialty.value)
        self.difficulty_var.set(self.draft.difficulty.value)
        self.diag_text.delete("1.0", "end")
        self.diag_text.insert("1.0", self.draft.diagnosis)

    def _refresh_series(self):
        self.lb.delete(0, "end")
        for s in self.draft.series:
            self.lb.insert("end", f"{s.name}  [{len(s.images)}]")

    def _selected_index(self):
        sel = self.lb.curselection()
        return int(sel[0]) if sel else None

    # ---------- AI ----------
    def _analyze(self):
        self._pull()
        if not self.draft.clinical_note.strip():
            return
        if not self.analyze_site.start(self.ai.classify, self.draft.clinical_note,
                                       on_done=self._on_analyzed):
            return
        self.analyze_btn.config(state="disabled")
        self.ai_status.config(text="Analyse en cours…")

    def _on_analyzed(self, classification):
        if not self.winfo_exists():
            return
        self.analyze_btn.config(state="normal")
        self._pull()
        if self.draft.apply_suggestion(classification):
            self._push_classification()
            self.ai_status.config(text="Suggestion appliquée")
        else:
            self.ai_status.config(text="Aucune suggestion")

    # ---------- Series ----------
    def _add_series(self):
        global _last_import_dir
        paths = filedialog.askopenfilenames(
            parent=self, title="Sélectionner les images",
            initialdir=_import_dir(),
            filetypes=[("Images", "*.png *.jpg *.jpeg *.dcm"), ("Tous les fichiers", "*.*")]
        )
        if paths:
            _last_import_dir = os.path.dirname(paths[0])
        images = []
        for p in paths:
            try:
                images.extend(file_to_data_urls(p))
            except Exception as e:
                logger.warning("Could not read %s: %s", p, e)
                messagebox.showerror("Image", f"Impossible d'ouvrir :\n{p}\n\n{e}", parent=self)
        if self.draft.add_series(images):
            self._refresh_series()

    def _rename_series(self):
        i = self._selected_index()
        if i is None:
            return
        name = simpledialog.askstring("Série", "Nom de la série :", parent=self,
                                      initialvalue=self.draft.series[i].name)
        if name and name.strip():
            self.draft.rename_series(i, name.strip())
            self._refresh_series()

    def _remove_series(self):
        i = self._selected_index()
        if i is None:
            return
        self.draft.remove_series(i)
        self._refresh_series()

    # ---------- Submit ----------
    def _cancel(self):
        self.result = None
        self.destroy()

    def _save(self):
        self._pull()
        missing = self.draft.validate()
        if missing:
            messagebox.showerror("Validation", "Champs obligatoires :\n- " + "\n- ".join(missing), parent=self)
            return
        self.result = self.draft
        self.destroy()
