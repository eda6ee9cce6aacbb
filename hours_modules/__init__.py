"""
Hours modules: margin cascade, bonus/penalty evaluation, hour ledger,
capacity, budget rollups and task completion.

Each module follows the same layout where it applies:
    models.py      frozen DTOs and enums
    <engine>.py    pure computation (cascade, evaluator, positions,
                   calculator, rollup)
    orm.py         SQLAlchemy persistence models
    repository.py  repository protocol and SQLAlchemy implementation
    service.py     mutating operations; owns the transaction boundary
    selector.py    read-only queries
"""
