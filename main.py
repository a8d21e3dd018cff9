"""
EngVantage - Tkinter vocabulary trainer

Flow:
1. Word list card: 10 AI-generated words for the selected level, each with
   phonetics, translation, definition, an example sentence and pronunciation.
2. Mark words as learned; the total and the daily streak persist.
3. Quick quiz: one multiple-choice question per word, then back to the list.

Setup (from repo root):

    python -m venv .venv
    source .venv/bin/activate   # or .venv\\Scripts\\activate on Windows
    pip install -e .

Ensure .env contains either:
    OPENAI_API_KEY=sk-...
or, to go through a relay backend:
    ENGVANTAGE_GATEWAY=relay
    ENGVANTAGE_RELAY_URL=https://...

Then run:
    python main.py
"""

import tkinter as tk
from tkinter import ttk
from typing import Dict, List, Optional

from engvantage.api import ContentGateway
from engvantage.config import load_settings
from engvantage.errors import ConfigurationError
from engvantage.logger import logger
from engvantage.models import StudentLevel, TargetLanguage, Word
from engvantage.quiz import QuizRunner
from engvantage.session import SessionController
from engvantage.stats import get_stats_store
from engvantage.transport import create_transport

BACKGROUND = "#1e1e1e"
SURFACE = "#2d2d2d"
ACCENT = "#7bb3ff"
MUTED = "#9a9a9a"
SUCCESS = "#6fcf97"
DANGER = "#ff7b7b"

GRID_COLUMNS = 3


# ---------------------------------------------------------------------------
# Scrollable Frame Widget
# ---------------------------------------------------------------------------

class ScrollableFrame(ttk.Frame):
    """
    A frame with vertical scrolling for its content.

    Add widgets to `scrollable.content`, not to the frame itself.
    """

    def __init__(self, parent, **kwargs) -> None:
        super().__init__(parent, **kwargs)

        self.canvas = tk.Canvas(self, highlightthickness=0, background=BACKGROUND)
        self.scrollbar = ttk.Scrollbar(self, orient="vertical", command=self.canvas.yview)
        self.content = ttk.Frame(self.canvas)
        self.content_window = self.canvas.create_window((0, 0), window=self.content, anchor="nw")

        self.canvas.configure(yscrollcommand=self.scrollbar.set)
        self.canvas.pack(side="left", fill="both", expand=True)
        self.scrollbar.pack(side="right", fill="y")

        self.content.bind("<Configure>", self._on_content_configure)
        self.canvas.bind("<Configure>", self._on_canvas_configure)
        self.bind_all("<MouseWheel>", self._on_mousewheel, add="+")
        self.bind_all("<Button-4>", lambda e: self.canvas.yview_scroll(-1, "units"), add="+")
        self.bind_all("<Button-5>", lambda e: self.canvas.yview_scroll(1, "units"), add="+")

    def _on_content_configure(self, event: tk.Event) -> None:
        self.canvas.configure(scrollregion=self.canvas.bbox("all"))

    def _on_canvas_configure(self, event: tk.Event) -> None:
        # Content always spans the full canvas width so the grid can stretch
        self.canvas.itemconfigure(self.content_window, width=event.width)

    def _on_mousewheel(self, event: tk.Event) -> None:
        if not self.winfo_ismapped():
            return
        if abs(event.delta) < 10:
            # macOS trackpad deltas are tiny
            step = -1 if event.delta > 0 else 1
        else:
            step = int(-event.delta / 120)
        self.canvas.yview_scroll(step, "units")

    def scroll_to_top(self) -> None:
        self.canvas.yview_moveto(0)


# ---------------------------------------------------------------------------
# Loading Spinner
# ---------------------------------------------------------------------------

class LoadingSpinner(ttk.Frame):
    """A small animated loading indicator."""

    def __init__(self, parent, text: str = "Loading...") -> None:
        super().__init__(parent)

        self.text = text
        self.spinner_chars = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]
        self.spinner_index = 0
        self.is_running = False
        self._after_id = None

        self.label = ttk.Label(self, text=f"{self.spinner_chars[0]} {text}",
                               font=("Helvetica", 14), foreground=ACCENT)
        self.label.pack(pady=20)

    def start(self, text: Optional[str] = None) -> None:
        if text:
            self.text = text
        if self.is_running:
            return
        self.is_running = True
        self._animate()

    def stop(self) -> None:
        self.is_running = False
        if self._after_id:
            self.after_cancel(self._after_id)
            self._after_id = None

    def _animate(self) -> None:
        if not self.is_running:
            return
        char = self.spinner_chars[self.spinner_index]
        self.label.configure(text=f"{char} {self.text}")
        self.spinner_index = (self.spinner_index + 1) % len(self.spinner_chars)
        self._after_id = self.after(100, self._animate)


# ---------------------------------------------------------------------------
# Word card
# ---------------------------------------------------------------------------

class WordCardView(ttk.Frame):
    """One vocabulary entry in the grid."""

    def __init__(self, parent, app: "EngVantageApp", word: Word) -> None:
        super().__init__(parent, style="Card.TFrame", padding=14)
        self.app = app
        self.word = word

        header = ttk.Frame(self, style="Card.TFrame")
        header.pack(fill="x")
        ttk.Label(header, text=word.word, style="CardTitle.TLabel").pack(side="left")
        ttk.Button(header, text="🔊", width=3, style="Icon.TButton",
                   command=lambda: app.controller.pronounce(word.word)).pack(side="right", padx=(4, 0))
        self.learned_button = ttk.Button(header, width=3, command=self._on_toggle)
        self.learned_button.pack(side="right")

        ttk.Label(self, text=word.phonetic, style="CardAccent.TLabel").pack(anchor="w")
        ttk.Label(self, text=word.translation, style="Card.TLabel", wraplength=240,
                  justify="left").pack(anchor="w", pady=(8, 0))
        ttk.Label(self, text=word.definition, style="CardMuted.TLabel", wraplength=240,
                  justify="left").pack(anchor="w")

        example = ttk.Frame(self, style="Example.TFrame", padding=8)
        example.pack(fill="x", pady=(10, 0))
        example_header = ttk.Frame(example, style="Example.TFrame")
        example_header.pack(fill="x")
        ttk.Label(example_header, text="EXAMPLE", style="ExampleMuted.TLabel").pack(side="left")
        ttk.Button(example_header, text="🔊", width=3, style="Icon.TButton",
                   command=lambda: app.controller.pronounce(word.example_sentence)).pack(side="right")
        ttk.Label(example, text=word.example_sentence, style="Example.TLabel", wraplength=230,
                  justify="left").pack(anchor="w")
        ttk.Label(example, text=word.example_translation, style="ExampleMuted.TLabel", wraplength=230,
                  justify="left").pack(anchor="w", pady=(4, 0))

        self.refresh()

    def refresh(self) -> None:
        if self.word.learned:
            self.learned_button.configure(text="✓", style="Learned.TButton")
        else:
            self.learned_button.configure(text="○", style="Icon.TButton")

    def _on_toggle(self) -> None:
        self.app.controller.toggle_learned(self.word.id)


# ---------------------------------------------------------------------------
# Word list card
# ---------------------------------------------------------------------------

class WordListCard(ttk.Frame):
    def __init__(self, parent, app: "EngVantageApp") -> None:
        super().__init__(parent)
        self.app = app
        self._shown_ids: List[str] = []
        self._views: Dict[str, WordCardView] = {}

        # Header row: level buttons, language, stats, refresh
        header = ttk.Frame(self, padding=(20, 14))
        header.pack(fill="x")

        ttk.Label(header, text="EngVantage", style="Title.TLabel").pack(side="left")

        levels = ttk.Frame(header)
        levels.pack(side="left", padx=24)
        self.level_buttons: Dict[StudentLevel, ttk.Button] = {}
        for level in StudentLevel:
            btn = ttk.Button(levels, text=level.value, command=lambda lv=level: app.controller.set_level(lv))
            btn.pack(side="left", padx=2)
            self.level_buttons[level] = btn

        self.language_var = tk.StringVar(value=app.controller.target_language.value)
        language_box = ttk.Combobox(header, textvariable=self.language_var, state="readonly", width=20,
                                    values=[lang.value for lang in TargetLanguage])
        language_box.pack(side="left")
        language_box.bind("<<ComboboxSelected>>", self._on_language_selected)

        ttk.Button(header, text="⟳", width=3, command=app.controller.reload_words).pack(side="right")
        self.stats_label = ttk.Label(header, style="Stats.TLabel")
        self.stats_label.pack(side="right", padx=16)

        # Inline error / notice banner
        self.banner = ttk.Frame(self, padding=(20, 0))
        self.banner_label = ttk.Label(self.banner, style="Banner.TLabel", wraplength=700, justify="left")
        self.banner_label.pack(side="left", fill="x", expand=True)
        ttk.Button(self.banner, text="✕", width=3, command=app.controller.dismiss_error).pack(side="right")

        self.subtitle = ttk.Label(self, style="Muted.TLabel", padding=(20, 4))
        self.subtitle.pack(fill="x")

        self.spinner = LoadingSpinner(self, "Summoning words from the AI cloud...")

        self.scroll = ScrollableFrame(self)
        self.scroll.pack(fill="both", expand=True, padx=12)
        for column in range(GRID_COLUMNS):
            self.scroll.content.columnconfigure(column, weight=1, uniform="cards")

        footer = ttk.Frame(self, padding=12)
        footer.pack(fill="x", side="bottom")
        self.quiz_button = ttk.Button(footer, text="Start Quick Quiz", style="Primary.TButton",
                                      command=app.controller.start_quiz)
        self.quiz_button.pack()

    def _on_language_selected(self, event=None) -> None:
        self.app.controller.set_target_language(self.language_var.get())

    def render(self) -> None:
        controller = self.app.controller
        stats = controller.stats

        for level, btn in self.level_buttons.items():
            btn.configure(style="Selected.TButton" if level == controller.level else "TButton")
        self.language_var.set(controller.target_language.value)
        self.stats_label.configure(
            text=f"Total words {stats.total_words_learned}   🔥 {stats.current_streak}"
        )
        self.subtitle.configure(
            text=f"Explore {controller.words_per_batch} curated words for {controller.level.value} level, "
                 f"translated into {controller.target_language.value}."
        )

        message = controller.error_message or controller.notice
        if message:
            self.banner_label.configure(
                text=message,
                foreground=DANGER if controller.error_message else ACCENT,
            )
            self.banner.pack(fill="x", after=self.subtitle)
        else:
            self.banner.pack_forget()

        if controller.words_loading:
            self.spinner.pack(after=self.subtitle)
            self.spinner.start("Summoning words from the AI cloud...")
            self.scroll.pack_forget()
        elif controller.quiz_loading:
            self.spinner.pack(after=self.subtitle)
            self.spinner.start("Preparing your quiz...")
        else:
            self.spinner.stop()
            self.spinner.pack_forget()
            if not self.scroll.winfo_ismapped():
                self.scroll.pack(fill="both", expand=True, padx=12)

        self._render_words(controller.words)

        if controller.words and not controller.is_loading:
            self.quiz_button.state(["!disabled"])
        else:
            self.quiz_button.state(["disabled"])

    def _render_words(self, words: List[Word]) -> None:
        ids = [w.id for w in words]
        if ids == self._shown_ids:
            for view in self._views.values():
                view.refresh()
            return

        for view in self._views.values():
            view.destroy()
        self._views = {}
        for index, word in enumerate(words):
            view = WordCardView(self.scroll.content, self.app, word)
            view.grid(row=index // GRID_COLUMNS, column=index % GRID_COLUMNS, sticky="nsew", padx=8, pady=8)
            self._views[word.id] = view
        self._shown_ids = ids
        self.scroll.scroll_to_top()


# ---------------------------------------------------------------------------
# Quiz card
# ---------------------------------------------------------------------------

class QuizCard(ttk.Frame):
    def __init__(self, parent, app: "EngVantageApp") -> None:
        super().__init__(parent, padding=30)
        self.app = app
        self.runner: Optional[QuizRunner] = None
        self.option_buttons: List[ttk.Button] = []

        top = ttk.Frame(self)
        top.pack(fill="x")
        self.progress_label = ttk.Label(top, style="Muted.TLabel")
        self.progress_label.pack(side="left")
        ttk.Button(top, text="✕ Quit quiz", command=app.controller.cancel_quiz).pack(side="right")

        self.question_label = ttk.Label(self, style="Question.TLabel", wraplength=700, justify="left")
        self.question_label.pack(fill="x", pady=(30, 20))

        self.options_frame = ttk.Frame(self)
        self.options_frame.pack(fill="x")

        self.feedback_label = ttk.Label(self, wraplength=700, justify="left")
        self.feedback_label.pack(fill="x", pady=16)

        self.next_button = ttk.Button(self, style="Primary.TButton", command=self._on_next)
        self.next_button.pack()

    def start(self, runner: QuizRunner) -> None:
        self.runner = runner
        self._render_question()

    def _render_question(self) -> None:
        runner = self.runner
        question = runner.current
        for btn in self.option_buttons:
            btn.destroy()
        self.option_buttons = []

        self.progress_label.configure(text=f"{runner.progress_label()}   Score {runner.score}")
        self.question_label.configure(text=question.question)
        for i, option in enumerate(question.options):
            btn = ttk.Button(self.options_frame, text=f"{chr(65 + i)}. {option}", width=60,
                             command=lambda opt=option: self._on_answer(opt))
            btn.pack(pady=4)
            self.option_buttons.append(btn)

        self.feedback_label.configure(text="")
        self.next_button.configure(text="Finish" if runner.is_last else "Next")
        self.next_button.state(["disabled"])

    def _on_answer(self, option: str) -> None:
        if self.runner.answered:
            return
        question = self.runner.current
        correct = self.runner.answer(option)
        for btn, value in zip(self.option_buttons, question.options):
            if value == question.correct_answer:
                btn.configure(style="Learned.TButton")
            elif value == option:
                btn.configure(style="Wrong.TButton")
            btn.state(["disabled"])

        if correct:
            self.feedback_label.configure(text="✓ Correct!", foreground=SUCCESS)
        else:
            self.feedback_label.configure(text=f"✗ The answer is: {question.correct_answer}", foreground=DANGER)
        self.progress_label.configure(text=f"{self.runner.progress_label()}   Score {self.runner.score}")
        self.next_button.state(["!disabled"])

    def _on_next(self) -> None:
        self.runner.advance()
        if self.runner.finished:
            self.app.controller.complete_quiz(self.runner.score)
        else:
            self._render_question()


# ---------------------------------------------------------------------------
# Setup card
# ---------------------------------------------------------------------------

class SetupCard(ttk.Frame):
    """Shown when the gateway cannot be configured."""

    def __init__(self, parent, message: str) -> None:
        super().__init__(parent, padding=40)
        ttk.Label(self, text="Welcome to EngVantage", style="Title.TLabel").pack(pady=(40, 16))
        ttk.Label(self, text=message, wraplength=520, justify="center").pack(pady=8)
        ttk.Label(
            self,
            text="Add OPENAI_API_KEY to your .env file, or set ENGVANTAGE_GATEWAY=relay "
                 "and ENGVANTAGE_RELAY_URL, then restart the app.",
            style="Muted.TLabel", wraplength=520, justify="center",
        ).pack(pady=8)


# ---------------------------------------------------------------------------
# Application window
# ---------------------------------------------------------------------------

class EngVantageApp(tk.Tk):
    def __init__(self) -> None:
        super().__init__()
        logger.ui("Initializing EngVantageApp window...")

        self.title("EngVantage")
        window_width, window_height = 1080, 780
        center_x = int(self.winfo_screenwidth() / 2 - window_width / 2)
        center_y = int(self.winfo_screenheight() / 2 - window_height / 2)
        self.geometry(f"{window_width}x{window_height}+{center_x}+{center_y}")
        self.minsize(600, 400)
        self.configure(bg=BACKGROUND)
        self._configure_styles()

        container = ttk.Frame(self)
        container.pack(fill="both", expand=True)
        container.rowconfigure(0, weight=1)
        container.columnconfigure(0, weight=1)

        settings = load_settings()
        self.controller: Optional[SessionController] = None
        try:
            transport = create_transport(settings)
        except ConfigurationError as e:
            logger.env_error(str(e))
            SetupCard(container, str(e)).grid(row=0, column=0, sticky="nsew")
            return

        self.controller = SessionController(
            ContentGateway(transport),
            get_stats_store(settings),
            dispatch=lambda callback: self.after(0, callback),
        )

        self.cards = {
            "WordListCard": WordListCard(container, self),
            "QuizCard": QuizCard(container, self),
        }
        for card in self.cards.values():
            card.grid(row=0, column=0, sticky="nsew")

        self._quiz_running = False
        self.controller.subscribe(self.render)
        self.render()
        self.controller.reload_words()
        logger.ui("Application initialized successfully")

    def _configure_styles(self) -> None:
        style = ttk.Style()
        style.theme_use("clam")
        style.configure("TFrame", background=BACKGROUND)
        style.configure("TLabel", background=BACKGROUND, foreground="#e0e0e0", font=("Helvetica", 14))
        style.configure("Title.TLabel", font=("Helvetica", 22, "bold"))
        style.configure("Muted.TLabel", foreground=MUTED, font=("Helvetica", 13))
        style.configure("Stats.TLabel", foreground=ACCENT, font=("Helvetica", 14, "bold"))
        style.configure("Banner.TLabel", font=("Helvetica", 13))
        style.configure("Question.TLabel", font=("Helvetica", 18, "bold"))
        style.configure("TButton", background=SURFACE, foreground="#e0e0e0", font=("Helvetica", 13))
        style.map("TButton", background=[("active", "#3d3d3d")])
        style.configure("Selected.TButton", background="#4a6fa5", foreground="#ffffff")
        style.map("Selected.TButton", background=[("active", "#5a7fb5")])
        style.configure("Primary.TButton", background="#4a6fa5", foreground="#ffffff",
                        font=("Helvetica", 14, "bold"), padding=(20, 10))
        style.map("Primary.TButton", background=[("active", "#5a7fb5"), ("disabled", SURFACE)])
        style.configure("Icon.TButton", background=SURFACE, foreground=ACCENT)
        style.configure("Learned.TButton", background="#2f5d43", foreground=SUCCESS)
        style.configure("Wrong.TButton", background="#5d2f2f", foreground=DANGER)
        style.configure("Card.TFrame", background=SURFACE)
        style.configure("Card.TLabel", background=SURFACE, foreground="#e0e0e0", font=("Helvetica", 14, "bold"))
        style.configure("CardTitle.TLabel", background=SURFACE, foreground="#ffffff", font=("Helvetica", 20, "bold"))
        style.configure("CardAccent.TLabel", background=SURFACE, foreground=ACCENT, font=("Helvetica", 12))
        style.configure("CardMuted.TLabel", background=SURFACE, foreground=MUTED, font=("Helvetica", 12, "italic"))
        style.configure("Example.TFrame", background="#252525")
        style.configure("Example.TLabel", background="#252525", foreground="#e0e0e0", font=("Helvetica", 12))
        style.configure("ExampleMuted.TLabel", background="#252525", foreground=MUTED, font=("Helvetica", 11, "italic"))
        style.configure("TCombobox", fieldbackground="#3d3d3d", background=SURFACE, foreground="#ffffff",
                        arrowcolor="#ffffff")
        style.map("TCombobox", fieldbackground=[("readonly", "#3d3d3d")])
        style.configure("TScrollbar", background=SURFACE, troughcolor=BACKGROUND)

    def show_card(self, name: str) -> None:
        self.cards[name].tkraise()

    def render(self) -> None:
        controller = self.controller
        if controller.is_quiz_mode:
            if not self._quiz_running:
                self._quiz_running = True
                logger.ui_transition("WordListCard", "QuizCard")
                self.cards["QuizCard"].start(QuizRunner(controller.quiz_questions))
                self.show_card("QuizCard")
            return

        if self._quiz_running:
            self._quiz_running = False
            logger.ui_transition("QuizCard", "WordListCard")
        self.cards["WordListCard"].render()
        self.show_card("WordListCard")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    logger.banner("EngVantage - Starting Application")
    app = EngVantageApp()
    logger.success("Application window created, entering main loop")
    app.mainloop()
    logger.separator("Application Closed")


if __name__ == "__main__":
    main()
