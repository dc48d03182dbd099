"""
Repositories package

Each repository encapsulates database operations for a model or a family of models:
- titles_repository.py
- taxonomy_repository.py
- etc.

Usage:
    from repositories.titles_repository import TitlesRepository
    title = TitlesRepository.get_by_id(1)
"""
