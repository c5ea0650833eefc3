"""Tkinter GUI for the Tactical Tangle formation editor.

Wires the formations core to an interactive desktop tool. The major
pieces are:

  * ``ArmyPanel`` — the right sidebar: army selector, spawn buttons per
    unit type, undo/redo, bulk shape/position commands, the points bar
    with the advisory over-budget warning, and battle readiness.
  * ``CharacterPanel`` — lists the roster characters still free in this
    battle and the characters assigned to the selected unit, with
    assign-as-general/soldier and remove actions.
  * ``App`` — the top-level window. It renders the committed units with
    ``ArmyRenderer`` to a Pillow image and translates canvas mouse and key
    events into ``InteractionController`` events. During a drag or resize
    the gesture unit is left out of the base image and drawn as canvas
    items that follow the controller's preview.

The controller owns all editing rules; this module only converts between
canvas and surface coordinates and shows results.
"""

from __future__ import annotations

import argparse
import logging
import tkinter as tk
from tkinter import filedialog, messagebox, ttk

from PIL import Image, ImageTk

from formations.army import GENERAL, SOLDIER, ArmyModel
from formations.battle import (
    get_army,
    is_battle_ready,
    open_battle,
    update_players,
)
from formations.config import EditorConfig, load_config
from formations.history import HistoryManager
from formations.ids import IdGenerator
from formations.interaction import (
    Cancel,
    InteractionController,
    PointerDown,
    PointerMove,
    PointerUp,
)
from formations.models import Battle, Player
from formations.persistence import (
    InMemoryPersistence,
    JsonFilePersistence,
    Persistence,
)
from formations.roster import Roster, load_roster
from formations.sizing import footprint_of
from formations.unit_types import MAX_POINTS, MIN_POINTS, UNIT_TYPES

from .battle_io import load_battle, save_battle_png
from .renderer import (
    PREVIEW_INVALID_OUTLINE,
    PREVIEW_VALID_OUTLINE,
    ArmyRenderer,
    hit_test,
    unit_colors,
)

logger = logging.getLogger(__name__)

CANVAS_BG = "#1e1e1e"
OVER_BUDGET_COLOR = "#cc2222"
CANVAS_MARGIN = 20
SUPERSAMPLE = 2


# ---------------------------------------------------------------------------
# Side panels
# ---------------------------------------------------------------------------


class ArmyPanel(ttk.Frame):
    """Army selector, spawn/edit commands, points bar and readiness."""

    def __init__(self, parent, app: App):
        super().__init__(parent, padding=5)
        self.app = app
        self.player_var = tk.IntVar(value=0)
        self.budget_var = tk.StringVar()
        self._build()

    def _build(self):
        row = 0
        ttk.Label(self, text="Army", font=("", 10, "bold")).grid(
            row=row, column=0, columnspan=2, sticky="w"
        )
        row += 1
        for pid in (0, 1):
            ttk.Radiobutton(
                self,
                text=f"Player {pid + 1}",
                variable=self.player_var,
                value=pid,
                command=self.app.on_army_switched,
            ).grid(row=row, column=pid, sticky="w")
        row += 1

        ttk.Label(self, text="Budget").grid(row=row, column=0, sticky="w")
        budget = ttk.Spinbox(
            self,
            from_=MIN_POINTS,
            to=MAX_POINTS,
            increment=100,
            textvariable=self.budget_var,
            width=8,
            command=self.app.on_budget_changed,
        )
        budget.grid(row=row, column=1, sticky="w")
        budget.bind("<Return>", lambda _e: self.app.on_budget_changed())
        row += 1

        self.points_label = tk.Label(self, text="Points: --", anchor="w")
        self.points_label.grid(row=row, column=0, columnspan=2, sticky="we")
        row += 1

        ttk.Separator(self).grid(row=row, column=0, columnspan=2, sticky="we", pady=5)
        row += 1
        ttk.Label(self, text="Spawn", font=("", 10, "bold")).grid(
            row=row, column=0, columnspan=2, sticky="w"
        )
        row += 1
        for key, ut in UNIT_TYPES.items():
            colors = unit_colors(key)
            tk.Button(
                self,
                text=f"+ {ut.name} ({ut.cost}/soldier)",
                command=lambda k=key: self.app.on_spawn(k),
                bg=colors["fill"],
                fg="white",
                activebackground=colors["outline"],
                activeforeground="white",
            ).grid(row=row, column=0, columnspan=2, sticky="we", pady=1)
            row += 1

        ttk.Separator(self).grid(row=row, column=0, columnspan=2, sticky="we", pady=5)
        row += 1
        self.undo_btn = ttk.Button(self, text="Undo", command=self.app.on_undo)
        self.undo_btn.grid(row=row, column=0, sticky="we")
        self.redo_btn = ttk.Button(self, text="Redo", command=self.app.on_redo)
        self.redo_btn.grid(row=row, column=1, sticky="we")
        row += 1

        for label, command in (
            ("Duplicate", self.app.on_duplicate),
            ("Delete", self.app.on_delete),
            ("Copy shape to same type", self.app.on_copy_shape),
            ("Align same type to the right", self.app.on_align),
            ("Use as default spawn", self.app.on_set_default),
        ):
            ttk.Button(self, text=label, command=command).grid(
                row=row, column=0, columnspan=2, sticky="we", pady=1
            )
            row += 1

        ttk.Separator(self).grid(row=row, column=0, columnspan=2, sticky="we", pady=5)
        row += 1
        ttk.Button(self, text="Export PNG...", command=self.app.on_export).grid(
            row=row, column=0, sticky="we"
        )
        ttk.Button(self, text="Import...", command=self.app.on_import).grid(
            row=row, column=1, sticky="we"
        )
        row += 1
        self.ready_label = ttk.Label(self, text="", wraplength=220)
        self.ready_label.grid(row=row, column=0, columnspan=2, sticky="w", pady=5)

    def refresh(self, army: ArmyModel, controller: InteractionController):
        used = army.used_points
        limit = army.army.max_points
        if army.is_over_budget:
            self.points_label.config(
                text=f"Points: {used} / {limit} (over budget)",
                fg=OVER_BUDGET_COLOR,
            )
        else:
            self.points_label.config(text=f"Points: {used} / {limit}", fg="black")
        self.budget_var.set(str(limit))

        history = controller.history
        self.undo_btn.state(
            ["!disabled"] if history and history.can_undo else ["disabled"]
        )
        self.redo_btn.state(
            ["!disabled"] if history and history.can_redo else ["disabled"]
        )

        ready = is_battle_ready(army.battle)
        self.ready_label.config(
            text="Battle ready" if ready.valid else ready.error
        )


class CharacterPanel(ttk.Frame):
    """Available roster characters and the selected unit's assignments."""

    def __init__(self, parent, app: App):
        super().__init__(parent, padding=5)
        self.app = app
        self._available_ids: list[str] = []
        self._assigned: list[tuple[str, str]] = []  # (role, character id)
        self.search_var = tk.StringVar()
        self._build()

    def _build(self):
        ttk.Label(self, text="Available characters", font=("", 10, "bold")).pack(
            anchor="w"
        )
        search = ttk.Entry(self, textvariable=self.search_var)
        search.pack(fill=tk.X, pady=(0, 2))
        self.search_var.trace_add("write", lambda *_: self._on_search())
        self.available_list = tk.Listbox(self, height=10, exportselection=False)
        self.available_list.pack(fill=tk.BOTH, expand=True)
        buttons = ttk.Frame(self)
        buttons.pack(fill=tk.X, pady=2)
        ttk.Button(
            buttons, text="As general", command=lambda: self._assign(GENERAL)
        ).pack(side=tk.LEFT, expand=True, fill=tk.X)
        ttk.Button(
            buttons, text="As soldier", command=lambda: self._assign(SOLDIER)
        ).pack(side=tk.LEFT, expand=True, fill=tk.X)

        ttk.Label(self, text="Selected unit", font=("", 10, "bold")).pack(
            anchor="w", pady=(8, 0)
        )
        self.assigned_list = tk.Listbox(self, height=6, exportselection=False)
        self.assigned_list.pack(fill=tk.BOTH, expand=True)
        ttk.Button(self, text="Remove", command=self._remove).pack(fill=tk.X)

    def _on_search(self):
        self.refresh(self.app.army, self.app.controller)

    def _assign(self, role: str):
        picked = self.available_list.curselection()
        if not picked:
            return
        self.app.on_assign(self._available_ids[picked[0]], role)

    def _remove(self):
        picked = self.assigned_list.curselection()
        if not picked:
            return
        role, character_id = self._assigned[picked[0]]
        self.app.on_remove_character(role, character_id)

    def refresh(self, army: ArmyModel, controller: InteractionController):
        self.available_list.delete(0, tk.END)
        self._available_ids = []
        for character in controller.available_characters(self.search_var.get()):
            self._available_ids.append(character.id)
            self.available_list.insert(tk.END, character.name)

        self.assigned_list.delete(0, tk.END)
        self._assigned = []
        unit = army.get_unit(controller.selected) if controller.selected else None
        if unit is None:
            return
        if unit.general is not None:
            self._assigned.append((GENERAL, unit.general))
        self._assigned.extend((SOLDIER, cid) for cid in unit.soldiers)
        for role, cid in self._assigned:
            character = army.roster.get(cid)
            name = character.name if character else cid
            self.assigned_list.insert(tk.END, f"{name} ({role})")


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------


class App:
    def __init__(
        self,
        config: EditorConfig,
        battle: Battle,
        persistence: Persistence,
        roster: Roster,
        id_generator: IdGenerator,
    ):
        self.config = config
        self.persistence = persistence
        self.roster = roster
        self.id_generator = id_generator

        self.root = tk.Tk()
        self.root.title("Tactical Tangle")
        self.root.geometry("1500x900")
        self.root.configure(bg=CANVAS_BG)
        style = ttk.Style()
        style.theme_use("clam")

        self.left_panel = ttk.Frame(self.root)
        self.left_panel.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5, pady=5)
        self.canvas = tk.Canvas(self.left_panel, bg=CANVAS_BG, highlightthickness=0)
        self.canvas.pack(side=tk.TOP, fill=tk.BOTH, expand=True)
        self.status_label = ttk.Label(self.left_panel, text="")
        self.status_label.pack(side=tk.BOTTOM, fill=tk.X)

        self.right_panel = ttk.Frame(self.root)
        self.right_panel.pack(side=tk.RIGHT, fill=tk.Y, pady=5, padx=(0, 5))
        self.army_panel = ArmyPanel(self.right_panel, self)
        self.army_panel.pack(side=tk.TOP, fill=tk.X)
        self.character_panel = CharacterPanel(self.right_panel, self)
        if config.characters_enabled:
            self.character_panel.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        self._photo = None  # prevent GC
        self._scale = None
        self._img_offset_x = None
        self._img_offset_y = None
        # unit id -> canvas item ids of its live gesture overlay
        self._overlay_ids: dict[str, list[int]] = {}

        self._load_battle(battle)

        self.canvas.bind("<Configure>", lambda _e: self._render())
        self.canvas.bind("<Button-1>", self._on_press)
        self.canvas.bind("<B1-Motion>", self._on_drag)
        self.canvas.bind("<ButtonRelease-1>", self._on_release)
        self.root.bind("<Escape>", self._on_escape)
        self.root.bind("<Delete>", lambda _e: self.on_delete())
        self.root.bind("<Control-z>", lambda _e: self.on_undo())
        self.root.bind("<Control-y>", lambda _e: self.on_redo())
        self.root.bind("<Control-Z>", lambda _e: self.on_redo())  # Ctrl+Shift+Z
        self.root.bind("<Control-d>", lambda _e: self.on_duplicate())
        self.root.after(50, self._render)

    def _load_battle(self, battle: Battle):
        """Build one army model and controller per player for ``battle``."""
        self.battle = battle
        self.id_generator.reserve(u.id for u in battle.all_units())
        self.armies = []
        self.controllers = []
        for pid in (0, 1):
            army = ArmyModel(
                battle,
                pid,
                persistence=self.persistence,
                id_generator=self.id_generator,
                roster=self.roster,
                surface=self.config.surface,
                max_units=self.config.max_units,
            )
            history = HistoryManager(army, self.config.max_history_size)
            self.armies.append(army)
            self.controllers.append(
                InteractionController(
                    army,
                    history,
                    history_enabled=self.config.history_enabled,
                    characters_enabled=self.config.characters_enabled,
                    on_change=self._on_model_changed,
                )
            )

    @property
    def army(self) -> ArmyModel:
        return self.armies[self.army_panel.player_var.get()]

    @property
    def controller(self) -> InteractionController:
        return self.controllers[self.army_panel.player_var.get()]

    # -- rendering --

    def _fit(self) -> bool:
        """Compute surface->canvas scale and image offset; False if too small."""
        sw, sh = self.config.surface
        cw = self.canvas.winfo_width()
        ch = self.canvas.winfo_height()
        if cw < 20 or ch < 20:
            return False
        scale = min(
            (cw - 2 * CANVAS_MARGIN) / sw, (ch - 2 * CANVAS_MARGIN) / sh
        )
        if scale <= 0:
            return False
        self._scale = scale
        self._img_offset_x = cw / 2 - sw * scale / 2
        self._img_offset_y = ch / 2 - sh * scale / 2
        return True

    def _render(self, hidden: str | None = None):
        if not self._fit():
            return
        sw, sh = self.config.surface
        img_w = int(sw * self._scale)
        img_h = int(sh * self._scale)

        # Render at 2x and downsample for smoother edges and text.
        renderer = ArmyRenderer(
            sw, sh, scale=self._scale * SUPERSAMPLE, line_scale=SUPERSAMPLE
        )
        img = renderer.render(
            self.army.list_units(),
            selected=self.controller.selected,
            hidden=hidden,
        )
        img = img.resize((img_w, img_h), Image.Resampling.LANCZOS)

        self._photo = ImageTk.PhotoImage(img)
        self.canvas.delete("all")
        self._overlay_ids = {}
        cw = self.canvas.winfo_width()
        ch = self.canvas.winfo_height()
        self.canvas.create_image(cw / 2, ch / 2, image=self._photo, anchor="center")
        self._refresh_panels()

    def _refresh_panels(self):
        self.army_panel.refresh(self.army, self.controller)
        if self.config.characters_enabled:
            self.character_panel.refresh(self.army, self.controller)
        error = self.controller.last_error
        self.status_label.config(text=error.error if error else "")

    # -- coordinate conversion --

    def _canvas_to_surface(self, canvas_x, canvas_y):
        if self._scale is None:
            return None
        return (
            (canvas_x - self._img_offset_x) / self._scale,
            (canvas_y - self._img_offset_y) / self._scale,
        )

    def _surface_to_canvas(self, x, y):
        return (
            self._img_offset_x + x * self._scale,
            self._img_offset_y + y * self._scale,
        )

    # -- gesture overlay --

    def _create_overlay(self, unit_id: str):
        unit = self.army.get_unit(unit_id)
        if unit is None:
            return
        w, h = footprint_of(unit.formation)
        x0, y0 = self._surface_to_canvas(unit.position.x, unit.position.y)
        x1, y1 = self._surface_to_canvas(unit.position.x + w, unit.position.y + h)
        colors = unit_colors(unit.type)
        rect_id = self.canvas.create_rectangle(
            x0,
            y0,
            x1,
            y1,
            fill=colors["fill"],
            outline=PREVIEW_VALID_OUTLINE,
            width=2,
            stipple="gray50",
        )
        text_id = self.canvas.create_text(
            x0 + 4,
            y0 + 4,
            text=f"{unit.name}\n{unit.soldier_count}",
            anchor="nw",
            fill="white",
        )
        self._overlay_ids[unit_id] = [rect_id, text_id]

    def _update_overlay(self):
        preview = self.controller.preview
        if preview is None or preview.unit_id not in self._overlay_ids:
            return
        rect_id, text_id = self._overlay_ids[preview.unit_id]
        x0, y0 = self._surface_to_canvas(preview.position.x, preview.position.y)
        x1, y1 = self._surface_to_canvas(
            preview.position.x + preview.width,
            preview.position.y + preview.height,
        )
        self.canvas.coords(rect_id, x0, y0, x1, y1)
        self.canvas.itemconfig(
            rect_id,
            outline=PREVIEW_VALID_OUTLINE if preview.valid else PREVIEW_INVALID_OUTLINE,
        )
        unit = self.army.get_unit(preview.unit_id)
        name = unit.name if unit else ""
        self.canvas.coords(text_id, x0 + 4, y0 + 4)
        self.canvas.itemconfig(text_id, text=f"{name}\n{preview.soldier_count}")

    def _on_model_changed(self):
        selected = self.controller.selected
        if self.controller.is_idle:
            self._render()
        elif selected is not None and selected not in self._overlay_ids:
            # Gesture just started: base image without the unit, plus overlay.
            self._render(hidden=selected)
            self._create_overlay(selected)
        else:
            self._update_overlay()

    # -- canvas events --

    def _on_press(self, event):
        point = self._canvas_to_surface(event.x, event.y)
        if point is None:
            return
        x, y = point
        hit = hit_test(self.army.list_units(), x, y, self.controller.selected)
        unit_id, corner = hit if hit else (None, None)
        self.controller.handle(PointerDown(x, y, unit_id=unit_id, corner=corner))

    def _on_drag(self, event):
        if self.controller.is_idle:
            return
        point = self._canvas_to_surface(event.x, event.y)
        if point is not None:
            self.controller.handle(PointerMove(*point))

    def _on_release(self, event):
        if self.controller.is_idle:
            return
        point = self._canvas_to_surface(event.x, event.y)
        if point is not None:
            self.controller.handle(PointerUp(*point))

    def _on_escape(self, _event=None):
        self.controller.handle(Cancel())

    # -- commands --

    def on_army_switched(self):
        for controller in self.controllers:
            if not controller.is_idle:
                controller.handle(Cancel())
        self._render()

    def on_budget_changed(self):
        try:
            points = int(self.army_panel.budget_var.get())
        except ValueError:
            return
        pid = self.army.player_id
        players = [
            Player(name=a.player_name, max_points=a.max_points)
            for a in (get_army(self.battle, 0), get_army(self.battle, 1))
        ]
        players[pid] = Player(name=players[pid].name, max_points=points)
        update_players(self.battle, players[0], players[1])
        self.persistence.save(self.battle)
        self._render()

    def on_spawn(self, unit_type: str):
        self.controller.spawn(unit_type)

    def on_undo(self):
        self.controller.undo()

    def on_redo(self):
        self.controller.redo()

    def on_duplicate(self):
        self.controller.duplicate_selected()

    def on_delete(self):
        self.controller.delete_selected()

    def on_copy_shape(self):
        result = self.controller.copy_shape_to_all_of_type()
        if result.success and result.data["skipped"]:
            self.status_label.config(
                text=f"{len(result.data['skipped'])} unit(s) skipped: no room"
            )

    def on_align(self):
        result = self.controller.align_to_right()
        if result.success and result.data["skipped"]:
            self.status_label.config(
                text=f"{len(result.data['skipped'])} unit(s) skipped: no room"
            )

    def on_set_default(self):
        self.controller.set_default_spawn_template()

    def on_assign(self, character_id: str, role: str):
        self.controller.assign_character(character_id, role)
        pending = self.controller.pending
        if pending is None:
            return
        current = self.roster.get(pending.current_general)
        current_name = current.name if current else pending.current_general
        if messagebox.askyesno(
            "Replace general?",
            f"This unit is already led by {current_name}. Replace?",
        ):
            self.controller.confirm_pending()
        else:
            self.controller.reject_pending()

    def on_remove_character(self, role: str, character_id: str):
        self.controller.remove_character(role, character_id)

    def on_export(self):
        path = filedialog.asksaveasfilename(
            defaultextension=".png", filetypes=[("PNG snapshot", "*.png")]
        )
        if not path:
            return
        sw, sh = self.config.surface
        img = ArmyRenderer(sw, sh).render(self.army.list_units())
        try:
            save_battle_png(img, self.battle, path, self.army.player_id)
        except OSError as e:
            messagebox.showerror("Export failed", str(e))

    def on_import(self):
        path = filedialog.askopenfilename(
            filetypes=[("Battle files", "*.png *.json"), ("All files", "*.*")]
        )
        if not path:
            return
        try:
            snapshot = load_battle(path)
        except (OSError, ValueError) as e:
            messagebox.showerror("Import failed", str(e))
            return
        logger.info("Imported battle %s from %s", snapshot.battle.id, path)
        self._load_battle(snapshot.battle)
        self.army_panel.player_var.set(snapshot.player_id)
        self.persistence.save(snapshot.battle)
        self._render()

    def run(self):
        self.root.mainloop()


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Tactical Tangle formation editor")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("--state", help="Battle JSON file to load and save")
    parser.add_argument("--roster", help="JSON file with the character roster")
    parser.add_argument("--width", type=int, help="Surface width in pixels")
    parser.add_argument("--height", type=int, help="Surface height in pixels")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    return parser.parse_args(argv)


def build_config(args) -> EditorConfig:
    """Config file values, overridden by whichever flags were given."""
    config = load_config(args.config)
    if args.state:
        config.state_path = args.state
    if args.roster:
        config.roster_path = args.roster
    if args.width:
        config.surface_width = args.width
    if args.height:
        config.surface_height = args.height
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def main(argv=None):
    config = build_config(_parse_args(argv))
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if config.state_path:
        persistence: Persistence = JsonFilePersistence(config.state_path)
    else:
        persistence = InMemoryPersistence()
    roster = load_roster(config.roster_path)
    id_generator = IdGenerator()
    battle = open_battle(persistence, id_generator)
    logger.info(
        "Editing battle %s with %d roster characters", battle.id, len(roster)
    )
    App(config, battle, persistence, roster, id_generator).run()


if __name__ == "__main__":
    main()
