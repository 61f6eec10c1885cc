"""Interactive show selection.

Search results are ranked by title similarity and the user picks the right
series from a table.
"""

from typing import Callable, List, Optional, Union

from prompt_toolkit import prompt
from rapidfuzz import fuzz
from rich.console import Console
from rich.table import Table

from autotag.providers.base import SearchResult

SearchFunc = Callable[[str, Optional[int]], List[SearchResult]]

MAX_DISPLAYED_RESULTS = 10


def title_similarity(text1: str, text2: str) -> float:
    """Case-insensitive title similarity.

    Args:
        text1: First string
        text2: Second string

    Returns:
        float: Similarity score (0.0 to 1.0)
    """
    return fuzz.ratio(text1.lower(), text2.lower()) / 100.0


class InteractiveSearch:
    """Search a provider and let the user choose a series."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize interactive search.

        Args:
            console: Rich console for output (creates new one if not provided)
        """
        self.console = console or Console()

    def search_and_select(
        self, search_func: SearchFunc, initial_title: str, year: Optional[int] = None
    ) -> Optional[SearchResult]:
        """Search until the user selects a result or gives up.

        Args:
            search_func: Provider search (takes title and year)
            initial_title: Initial search title
            year: Optional year for filtering

        Returns:
            SearchResult | None: Selected result or None if cancelled

        Raises:
            ProviderError: If the provider search fails
        """
        current_title = initial_title

        while True:
            self.console.print(f"\n[bold]Searching for {current_title}...[/bold]")
            results = self.rank_results(search_func(current_title, year), current_title)

            if results:
                selected = self._display_and_select(results)
                if selected != "new":
                    return selected
            else:
                self.console.print("[yellow]No results found.[/yellow]")

            try:
                new_search = prompt(
                    "Enter new search term (or 'q' to quit): ",
                    default=current_title,
                ).strip()
            except (KeyboardInterrupt, EOFError):
                return None

            if new_search.lower() == "q" or not new_search:
                return None
            current_title = new_search

    @staticmethod
    def rank_results(results: List[SearchResult], search_title: str) -> List[SearchResult]:
        """Order results by title similarity, best first.

        Args:
            results: Provider results
            search_title: Title the user searched for

        Returns:
            List[SearchResult]: Results with relevance scores, sorted
        """
        for result in results:
            result.relevance_score = title_similarity(search_title, result.title) * 100
        return sorted(results, key=lambda r: r.relevance_score, reverse=True)

    def _display_and_select(self, results: List[SearchResult]) -> Union[SearchResult, str, None]:
        """Display results and prompt user to select one.

        Args:
            results: Ranked search results

        Returns:
            SearchResult | None | "new": Selected result, None if cancelled,
                or "new" for a new search
        """
        table = Table(title="Please match show")
        table.add_column("#", style="cyan", width=3)
        table.add_column("Title", style="bold")
        table.add_column("Year", style="yellow", width=6)
        table.add_column("TheTVDB ID", style="dim")

        display_results = results[:MAX_DISPLAYED_RESULTS]
        for idx, result in enumerate(display_results, 1):
            table.add_row(str(idx), result.title, str(result.year or "N/A"), result.id)

        self.console.print(table)
        self.console.print("[dim]Number to select, 'n' for a new search, 'q' to quit[/dim]")

        try:
            choice = prompt("\nYour choice: ", default="1").strip().lower()
        except (KeyboardInterrupt, EOFError):
            return None

        if choice == "q" or not choice:
            return None
        if choice == "n":
            return "new"

        try:
            index = int(choice) - 1
        except ValueError:
            self.console.print("[red]Invalid input.[/red]")
            return "new"

        if 0 <= index < len(display_results):
            return display_results[index]

        self.console.print("[red]Invalid selection.[/red]")
        return "new"
