"""
ORM model registry.

Imports every module that declares mapped classes so that
``Base.metadata`` knows about all tables before ``create_all``.
"""


def import_all_orm_models() -> None:
    import hours_kernel.models.audit_event  # noqa: F401
    import hours_kernel.models.resource  # noqa: F401
    import hours_kernel.models.work  # noqa: F401
    import hours_kernel.services.sequence_service  # noqa: F401
    import hours_modules.bonus.orm  # noqa: F401
    import hours_modules.ledger.orm  # noqa: F401
    import hours_modules.margin.orm  # noqa: F401
