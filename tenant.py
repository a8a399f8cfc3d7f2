"""Tenant-scoped state for one company.

A Tenant owns the company's stores and the components built on them. There
is no module-level cache; everything that reads or changes categories is
handed this object (or one of its stores) explicitly.
"""

from typing import Optional, TextIO
from commands.pipeline import CommandPipeline
from errors import NotFoundError
from hierarchy.merge import MergeEngine
from ingestion.categories import ImportResult, import_categories
from ingestion.export import export_categories, export_payees
from ingestion.payees import import_payees
from logger import get_logger
from models.company import Company
from store.categories import CategoryStore
from store.payees import PayeeStore

logger = get_logger("tenant")


class Tenant:
    """Stores, merge engine, importers and command pipeline of one company.

    Use Tenant.open() (or Services.open_tenant()) rather than the
    constructor; it loads both stores and subscribes them to changes.
    """

    def __init__(self, services, company: Company, generator=None, clock=None):
        self.services = services
        self.company = company
        config = services.config

        options = {"highlight_seconds": config.highlight_seconds}
        if clock is not None:
            options["clock"] = clock

        self.categories = CategoryStore(
            company.id,
            services.categories,
            services.transactions,
            services.automations,
            services.external_accounts,
            changes=services.changes,
            **options,
        )
        self.payees = PayeeStore(
            company.id,
            services.payees,
            services.transactions,
            changes=services.changes,
            **options,
        )
        self.merge_engine = MergeEngine(
            self.categories, services.transactions, services.automations
        )
        self.pipeline = CommandPipeline(
            self.categories,
            self.payees,
            self.merge_engine,
            generator=generator,
            max_batch_size=config.max_batch_size,
        )

    @classmethod
    def open(cls, services, company, generator=None, clock=None) -> "Tenant":
        """Load a company's data and start following its changes.

        Args:
            services: Services container.
            company: Company ID or name.
            generator: Optional CommandGenerator for the assistant.
            clock: Optional monotonic clock for highlight expiry.

        Raises:
            NotFoundError: If the company does not exist.
        """
        if isinstance(company, Company):
            found = company
        elif isinstance(company, int):
            found = services.companies.find(company)
        else:
            found = services.companies.find_by_name(str(company))
        if found is None:
            raise NotFoundError(f"Company {company!r} not found")

        tenant = cls(services, found, generator=generator, clock=clock)
        tenant.categories.refresh()
        tenant.payees.refresh()
        tenant.categories.subscribe()
        tenant.payees.subscribe()
        logger.debug(
            f"Opened company {found.name} with {len(tenant.categories)} categories "
            f"and {len(tenant.payees)} payees"
        )
        return tenant

    def close(self) -> None:
        """Stop following changes."""
        self.categories.close()
        self.payees.close()

    def merge(self, selected_ids, target_id):
        return self.merge_engine.merge(selected_ids, target_id)

    def import_categories(
        self, source: TextIO, auto_create_parents: Optional[bool] = None
    ) -> ImportResult:
        """Import a category CSV; auto_create_parents defaults to the config value."""
        if auto_create_parents is None:
            auto_create_parents = self.services.config.auto_create_parents
        return import_categories(self.categories, source, auto_create_parents)

    def import_payees(self, source: TextIO) -> ImportResult:
        return import_payees(self.payees, source)

    def export_categories(self, destination: TextIO) -> int:
        return export_categories(self.categories, destination)

    def export_payees(self, destination: TextIO) -> int:
        return export_payees(self.payees, destination)
