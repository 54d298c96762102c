"""Interactive UserDecision backed by rich prompts."""

from typing import Optional

import structlog
from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from episode_ledger.models.disc import (
    DoubleEpisodeAnswer,
    EpisodeAction,
    EpisodeChoice,
    FailureChoice,
    Track,
)
from episode_ledger.models.series import DoubleEpisodeHandling, TrackSortingStrategy

logger = structlog.get_logger()

CANCEL = "cancel"

_SORTING_CHOICES = {
    "track": TrackSortingStrategy.BY_TRACK_ORDER,
    "mpls": TrackSortingStrategy.BY_MPLS_FILE_NAME,
    "confirm": TrackSortingStrategy.USER_CONFIRMED,
}


class ConsoleDecisions:
    """Asks the user on the terminal. Typing "cancel" or EOF cancels a prompt."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _ask(self, prompt: str, choices: list[str], default: str) -> Optional[str]:
        try:
            answer = Prompt.ask(prompt, choices=choices + [CANCEL], default=default, console=self.console)
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None
        return None if answer == CANCEL else answer

    def _ask_int(self, prompt: str, default: Optional[int] = None) -> Optional[int]:
        try:
            if default is None:
                return IntPrompt.ask(prompt, console=self.console)
            return IntPrompt.ask(prompt, default=default, console=self.console)
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None

    def _confirm(self, prompt: str, default: bool) -> Optional[bool]:
        try:
            return Confirm.ask(prompt, default=default, console=self.console)
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None

    def starting_position(self, series_title: str, disc_name: str) -> Optional[tuple[int, int]]:
        self.console.print(
            f"[yellow]No season found in disc label[/yellow] [bold]{disc_name}[/bold] for {series_title}"
        )
        season = self._ask_int("Starting season", default=1)
        if season is None:
            return None
        episode = self._ask_int("Starting episode", default=1)
        if episode is None:
            return None
        return max(1, season), max(1, episode)

    def resolve_season_mismatch(
        self, series_title: str, disc_name: str, current_season: int, disc_season: int
    ) -> Optional[bool]:
        self.console.print(
            f"[yellow]Season mismatch[/yellow] for {series_title}: ledger is on season "
            f"{current_season}, disc [bold]{disc_name}[/bold] says season {disc_season}"
        )
        answer = self._ask("Use the disc's season or keep the current one?", ["disc", "keep"], "disc")
        if answer is None:
            return None
        return answer == "disc"

    def enable_auto_increment(
        self, series_title: str, disc_name: str, currently_enabled: bool
    ) -> Optional[bool]:
        if currently_enabled:
            prompt = f"Continue auto-increment numbering for {series_title}?"
        else:
            prompt = (
                f"{disc_name} looks like another disc of {series_title}. "
                "Enable auto-increment numbering?"
            )
        return self._confirm(prompt, default=currently_enabled)

    def choose_sorting_strategy(self, series_title: str) -> Optional[TrackSortingStrategy]:
        self.console.print(f"How should tracks of [bold]{series_title}[/bold] be ordered?")
        self.console.print("  track   - disc track order")
        self.console.print("  mpls    - playlist (MPLS) file name")
        self.console.print("  confirm - confirm each episode, learning as you go")
        answer = self._ask("Sorting", list(_SORTING_CHOICES), "track")
        return _SORTING_CHOICES.get(answer) if answer else None

    def classify_double_episode(
        self, series_title: str, track: Track, min_length_seconds: float
    ) -> Optional[DoubleEpisodeAnswer]:
        self.console.print(
            f"Track {track.index} ({track.duration_formatted}) is much longer than the "
            f"shortest track ({int(min_length_seconds) // 60} min)."
        )
        answer = self._ask(
            "Treat as",
            ["single", "double", "always-single", "always-double"],
            "single",
        )
        if answer is None:
            return None
        if answer == "always-single":
            return DoubleEpisodeAnswer(treat_as_double=False, save_policy=DoubleEpisodeHandling.ALWAYS_SINGLE)
        if answer == "always-double":
            return DoubleEpisodeAnswer(treat_as_double=True, save_policy=DoubleEpisodeHandling.ALWAYS_DOUBLE)
        return DoubleEpisodeAnswer(treat_as_double=answer == "double")

    def confirm_episode(
        self,
        series_title: str,
        season: int,
        track: Track,
        suggested_episode: int,
        episode_title: Optional[str],
        available_episodes: list[int],
        confidence: float,
    ) -> Optional[EpisodeChoice]:
        label = f"S{season:02d}E{suggested_episode:02d}"
        if episode_title:
            label += f" - {episode_title}"
        note = f" [dim](learned, {confidence:.0%})[/dim]" if confidence > 0 else ""
        self.console.print(
            f"Track {track.index} [bold]{track.name}[/bold] ({track.duration_formatted}) -> {label}{note}"
        )

        answer = self._ask("Episode", ["accept", "all", "select", "skip"], "accept")
        if answer is None:
            return None
        if answer == "all":
            return EpisodeChoice(action=EpisodeAction.ACCEPT_ALL)
        if answer == "skip":
            return EpisodeChoice(action=EpisodeAction.SKIP)
        if answer == "select":
            if available_episodes:
                shown = ", ".join(str(e) for e in available_episodes[:20])
                self.console.print(f"[dim]Unassigned: {shown}[/dim]")
            episode = self._ask_int("Episode number", default=suggested_episode)
            if episode is None or episode < 1:
                return None
            return EpisodeChoice(action=EpisodeAction.SELECT, episode=episode)
        return EpisodeChoice(action=EpisodeAction.ACCEPT)

    def resolve_track_failure(
        self, series_title: str, season: int, episodes: list[int], track: Track, error: str
    ) -> Optional[FailureChoice]:
        self.console.print(
            f"[red]Failed[/red] track {track.index} (S{season:02d} episodes {episodes}): {error}"
        )
        answer = self._ask("Retry, skip, skip all failures on this disc, or exit?", [c.value for c in FailureChoice], "retry")
        return FailureChoice(answer) if answer else None
