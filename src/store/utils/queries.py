"""Helpers for reading whole result sets out of a repository."""

from protean.utils.globals import current_domain

PAGE_SIZE = 100


def fetch_all(aggregate_cls, **filters) -> list:
    """Every record of ``aggregate_cls`` matching ``filters``.

    Query sets are paged by the provider, so walk the pages until one comes
    back short.
    """
    query = current_domain.repository_for(aggregate_cls)._dao.query
    if filters:
        query = query.filter(**filters)

    records, offset = [], 0
    while True:
        page = query.offset(offset).limit(PAGE_SIZE).all().items
        records.extend(page)
        if len(page) < PAGE_SIZE:
            return records
        offset += PAGE_SIZE
