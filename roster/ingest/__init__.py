"""
Roster Ingestion Package
------------------------
Validation, staging, commit and bulk import of community member records.

Modules:
    - national_id: Shape check and canonical forms of national ids
    - validation: ValidationEngine (column dictionary rules)
    - diff: DiffEngine (record matching and field differences)
    - staging: StagingEngine (preview path)
    - commit: CommitEngine (transactional apply of a staged session)
    - jobs: BatchJobTracker (asynchronous bulk path)
    - service: ImportService facade over all of the above

Import from the submodules directly, e.g.
``from roster.ingest.service import ImportService``.
"""
