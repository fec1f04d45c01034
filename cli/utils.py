import click
import functools
from typing import List, Optional, Dict
from sqlalchemy.orm import Session
from core.config import Settings
from core.errors import Conflict, LibraryError, NotFound, ValidationError
from core.sa.database import Database
from core.catalogue.client import CatalogueClient
from core.services.ownership_index import OwnershipIndex

class AppContext:
    """Settings plus the lazily built collaborators shared by all commands"""

    def __init__(self, settings: Settings, verbose: bool = False,
                 client: Optional[CatalogueClient] = None,
                 ownership_index: Optional[OwnershipIndex] = None):
        self.settings = settings
        self.verbose = verbose
        self._database: Optional[Database] = None
        self._client = client
        self._ownership_index = ownership_index

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = Database(self.settings.database_url)
        return self._database

    def session(self) -> Session:
        return self.database.get_session()

    @property
    def client(self) -> CatalogueClient:
        if self._client is None:
            self._client = CatalogueClient.from_settings(self.settings)
        return self._client

    @property
    def ownership_index(self) -> Optional[OwnershipIndex]:
        """None when no collection root is configured"""
        if self._ownership_index is None and self.settings.collection_root:
            self._ownership_index = OwnershipIndex(
                self.settings.collection_root,
                ttl=self.settings.ownership_cache_ttl
            )
        return self._ownership_index

pass_app = click.make_pass_decorator(AppContext)

def handle_errors(func):
    """Turn library errors into a coloured message and a non-zero exit code.

    Exit 1 for errors the user can correct, 2 for upstream, storage and filesystem failures.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Conflict as e:
            click.echo(click.style(f"Skipped: {e}", fg='yellow'), err=True)
            click.get_current_context().exit(1)
        except (NotFound, ValidationError) as e:
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            click.get_current_context().exit(1)
        except LibraryError as e:
            # UpstreamError, StorageError, AccessError
            click.echo(click.style(f"Failed: {e}", fg='red'), err=True)
            click.get_current_context().exit(2)
    return wrapper

class ProgressTracker:
    """Tracks progress and skipped items during import operations"""

    def __init__(self, verbose: bool = False):
        self.processed = 0
        self.imported = 0
        self.skipped: List[Dict[str, str]] = []
        self.verbose = verbose

    def add_skipped(self, name: str, id: str, reason: str, color: str = 'yellow'):
        """Add a skipped item to the tracking"""
        self.skipped.append({
            'name': name,
            'id': id,
            'reason': reason,
            'color': color
        })

    def increment_processed(self, count: int = 1):
        """Increment the processed counter"""
        self.processed += count

    def increment_imported(self, count: int = 1):
        """Increment the imported counter"""
        self.imported += count

    def add_import_summary(self, summary) -> None:
        """Fold an ImportSummary into the counters"""
        self.increment_processed(summary.books_imported + summary.books_skipped)
        self.increment_imported(summary.books_imported)
        for external_id, reason in summary.skipped_reasons.items():
            self.add_skipped(f"Book {external_id}", external_id, reason)

    def print_results(self, item_type: str = 'items'):
        """Print the results of the operation"""
        click.echo("\n" + click.style("Results:", fg='blue'))
        click.echo(click.style("Processed: ", fg='blue') +
                  click.style(str(self.processed), fg='cyan') +
                  click.style(f" {item_type}", fg='blue'))
        click.echo(click.style("Imported: ", fg='blue') +
                  click.style(str(self.imported), fg='green') +
                  click.style(" books", fg='blue'))

        if self.skipped and self.verbose:
            click.echo("\n" + click.style("Skipped items:", fg='yellow'))
            for skip_info in self.skipped:
                click.echo("\n" + click.style(f"Name: {skip_info['name']}", fg=skip_info['color']))
                click.echo(click.style(f"ID: {skip_info['id']}", fg=skip_info['color']))
                click.echo(click.style(f"Reason: {skip_info['reason']}", fg=skip_info['color']))
        elif self.skipped:
            click.echo(click.style(f"\nSkipped {len(self.skipped)} items. ", fg='yellow') +
                      click.style("Use --verbose to see details.", fg='blue'))

def describe_ownership(book) -> str:
    if not book.owned:
        return click.style("not owned", fg='white')
    return click.style(f"owned ({book.owned_source})", fg='green')
