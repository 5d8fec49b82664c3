"""Domain layer for balancebook application.

Services are imported from their modules (``balancebook.domain.entry`` and
so on); this package stays import-free so the database layer can load
``balancebook.domain.entities`` without pulling in the services.
"""
