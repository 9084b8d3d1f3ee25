# llm_compare_gui.py
import asyncio
import dataclasses
import queue
import threading
import tkinter as tk
from tkinter import ttk, messagebox

from llm_compare.app import RunCallbacks, start_comparison
from llm_compare.errors import BackendError, InvalidInput
from llm_compare.health import HealthState
from llm_compare.indicator import HealthIndicator
from llm_compare.logging_setup import configure_logging, get_logger
from llm_compare.presenter import grid_columns, render_card
from llm_compare.runner import build_backend, build_health_monitor, build_orchestrator

logger = get_logger(__name__)

LIGHT = {"bg": "#f5f5f7", "fg": "#111827", "card_bg": "#ffffff", "error_fg": "#b91c1c"}
DARK = {"bg": "#111827", "fg": "#f3f4f6", "card_bg": "#1f2937", "error_fg": "#f87171"}


class CompareGUI:
    def __init__(self, root: tk.Tk):
        self.root = root
        self.root.title("LLM Compare")
        self.root.geometry("1200x800")

        self.msgq: queue.Queue[tuple[str, object]] = queue.Queue()

        self.backend = build_backend()
        self.orchestrator = build_orchestrator(self.backend)
        self.monitor = build_health_monitor(
            self.backend,
            on_change=lambda s: self.msgq.put(("health", dataclasses.replace(s))),
        )
        self.health_state = HealthState()
        self.indicator = HealthIndicator()

        self.order: list[str] = []
        self.latest: dict = {}
        self.cards: dict[str, tk.Text] = {}
        self.running = False

        self.loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(target=self._run_loop, daemon=True)

        self._build_ui()
        self._apply_theme()
        self._loop_thread.start()
        self._submit(self._startup())
        self._poll_queue()

        self.root.protocol("WM_DELETE_WINDOW", self.on_close)

    # ---------- UI ----------

    def _build_ui(self):
        self.top = tk.Frame(self.root, padx=8, pady=8)
        self.top.pack(fill="both", expand=True)

        prompt_frame = ttk.LabelFrame(self.top, text="Enter Your Prompt", padding=8)
        prompt_frame.pack(fill="x")

        self.prompt_text = tk.Text(prompt_frame, height=5, wrap="word")
        self.prompt_text.pack(side="left", fill="x", expand=True)

        providers_frame = ttk.Frame(prompt_frame, padding=(8, 0))
        providers_frame.pack(side="right", fill="y")
        ttk.Label(providers_frame, text="Providers (none = all):").pack(anchor="w")
        self.provider_list = tk.Listbox(providers_frame, selectmode="multiple", height=5, exportselection=False)
        self.provider_list.pack(fill="y", expand=True)

        controls = ttk.Frame(self.top, padding=(0, 8))
        controls.pack(fill="x")

        self.btn_compare = ttk.Button(controls, text="Compare Models", command=self.on_compare)
        self.btn_compare.pack(side="left")

        self.btn_clear = ttk.Button(controls, text="Clear", command=self.on_clear)
        self.btn_clear.pack(side="left", padx=(8, 0))

        self.var_metadata = tk.BooleanVar(value=False)
        self.var_dark = tk.BooleanVar(value=False)
        ttk.Checkbutton(controls, text="Dark mode", variable=self.var_dark, command=self._apply_theme).pack(
            side="right"
        )
        ttk.Checkbutton(
            controls, text="Show metadata", variable=self.var_metadata, command=self._rerender_cards
        ).pack(side="right", padx=(0, 10))

        status_frame = ttk.Frame(self.top)
        status_frame.pack(fill="x")
        ttk.Label(status_frame, text="Status:").pack(side="left")
        self.status_label = ttk.Label(status_frame, text="Idle")
        self.status_label.pack(side="left", padx=(8, 0))

        self.grid_frame = tk.Frame(self.top, pady=8)
        self.grid_frame.pack(fill="both", expand=True)

        # Health badge: hidden unless the backend is unreachable.
        self.health_label = tk.Label(
            self.root,
            text="",
            bg="#ef4444",
            fg="white",
            padx=10,
            pady=6,
            takefocus=1,
        )
        for seq in ("<Enter>", "<FocusIn>"):
            self.health_label.bind(seq, lambda _e: self._on_indicator_hover(True))
        for seq in ("<Leave>", "<FocusOut>"):
            self.health_label.bind(seq, lambda _e: self._on_indicator_hover(False))

    def _apply_theme(self):
        theme = DARK if self.var_dark.get() else LIGHT
        for w in (self.root, self.top, self.grid_frame):
            w.configure(bg=theme["bg"])
        for w in [self.prompt_text, *self.cards.values()]:
            w.configure(bg=theme["card_bg"], fg=theme["fg"], insertbackground=theme["fg"])
        self._rerender_cards()

    def _rebuild_cards(self):
        for child in self.grid_frame.winfo_children():
            child.destroy()
        self.cards = {}

        cols = grid_columns(len(self.order))
        for c in range(3):
            self.grid_frame.columnconfigure(c, weight=1 if c < cols else 0)

        theme = DARK if self.var_dark.get() else LIGHT
        for i, pid in enumerate(self.order):
            r, c = divmod(i, cols)
            self.grid_frame.rowconfigure(r, weight=1)
            frame = ttk.LabelFrame(self.grid_frame, text=self.latest[pid].display_name, padding=4)
            frame.grid(row=r, column=c, sticky="nsew", padx=4, pady=4)
            text = tk.Text(frame, wrap="word", height=10, bg=theme["card_bg"], fg=theme["fg"])
            text.pack(fill="both", expand=True)
            self.cards[pid] = text

        self._rerender_cards()

    def _render_card(self, pid: str):
        widget = self.cards.get(pid)
        result = self.latest.get(pid)
        if widget is None or result is None:
            return
        theme = DARK if self.var_dark.get() else LIGHT
        widget.configure(state="normal")
        widget.delete("1.0", "end")
        widget.insert("end", render_card(result, show_metadata=self.var_metadata.get()))
        widget.configure(fg=theme["error_fg"] if result.error_message else theme["fg"], state="disabled")

    def _rerender_cards(self):
        for pid in self.order:
            self._render_card(pid)

    def _render_indicator(self):
        label = self.indicator.label(self.health_state)
        if label is None:
            self.health_label.place_forget()
            return
        self.health_label.configure(text=label)
        self.health_label.place(relx=1.0, rely=1.0, x=-16, y=-16, anchor="se")

    def _on_indicator_hover(self, entering: bool):
        if entering:
            self.indicator.hover_enter()
        else:
            self.indicator.hover_exit()
        self._render_indicator()

    def _set_status(self, s: str):
        self.status_label.configure(text=s)

    def _set_running(self, running: bool):
        self.running = running
        state = "disabled" if running else "normal"
        self.btn_compare.configure(state=state)
        self.btn_clear.configure(state=state)

    # ---------- Queue / event loop ----------

    def _poll_queue(self):
        try:
            while True:
                kind, payload = self.msgq.get_nowait()
                if kind == "status":
                    self._set_status(payload)
                elif kind == "providers":
                    self.provider_list.delete(0, "end")
                    for p in payload:
                        self.provider_list.insert("end", p)
                elif kind == "run_started":
                    self.order = [r.provider_id for r in payload]
                    self.latest = {r.provider_id: r for r in payload}
                    self._rebuild_cards()
                elif kind == "settled":
                    self.latest[payload.provider_id] = payload
                    self._render_card(payload.provider_id)
                elif kind == "finished":
                    self._set_running(False)
                    self._set_status(payload)
                elif kind == "error":
                    self._set_running(False)
                    self._set_status("Failed.")
                    messagebox.showerror("Comparison failed", payload)
                elif kind == "health":
                    self.health_state = payload
                    self._render_indicator()
        except queue.Empty:
            pass

        self.root.after(50, self._poll_queue)

    def _run_loop(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def _submit(self, coro):
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    async def _startup(self):
        self.monitor.start()
        try:
            providers = await self.backend.available_providers()
        except BackendError as e:
            logger.warning("provider_list_unavailable", error=str(e))
            self.msgq.put(("status", "Could not load provider list; comparisons use the backend default."))
            return
        self.msgq.put(("providers", providers))

    # ---------- Actions ----------

    def on_compare(self):
        prompt = self.prompt_text.get("1.0", "end")
        if not prompt.strip():
            messagebox.showwarning("Missing prompt", "Please enter a prompt.")
            return
        if self.running:
            return

        selected = [self.provider_list.get(i) for i in self.provider_list.curselection()]

        callbacks = RunCallbacks(
            on_started=lambda run: self.msgq.put(("run_started", run.snapshot())),
            on_settled=lambda r: self.msgq.put(("settled", r)),
        )

        async def go():
            self.msgq.put(("status", "Generating..."))
            try:
                run = await start_comparison(
                    orchestrator=self.orchestrator,
                    prompt=prompt.strip(),
                    provider_ids=selected,
                    callbacks=callbacks,
                )
                results = await run.wait()
            except (InvalidInput, BackendError) as e:
                self.msgq.put(("error", str(e)))
                return
            except Exception as e:
                logger.exception("comparison_crashed")
                self.msgq.put(("error", f"[ERROR] {e}"))
                return
            failed = sum(1 for r in results if r.error_message)
            self.msgq.put(("finished", f"Done. {len(results) - failed} ok, {failed} failed."))

        self._set_running(True)
        self._submit(go())

    def on_clear(self):
        self.prompt_text.delete("1.0", "end")
        self.order = []
        self.latest = {}
        self._rebuild_cards()
        self._set_status("Idle")

    def on_close(self):
        fut = self._submit(self.monitor.stop())
        try:
            fut.result(timeout=2)
        except Exception as e:
            logger.warning("monitor_stop_failed", error=str(e))
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.root.destroy()


def main():
    configure_logging()
    root = tk.Tk()
    try:
        ttk.Style().theme_use("clam")
    except tk.TclError:
        pass

    CompareGUI(root)
    root.mainloop()


if __name__ == "__main__":
    main()
