"""
Questionnaire Studio core package

This is the authoritative, UI-agnostic representation of a branching
questionnaire: pages, sections, questions and recursively nested
conditional branches.

ARCHITECTURAL GUARANTEE:
------------------------
This package contains ZERO knowledge of:
    - Rendering (panels, trees, dialogs)
    - Runtime evaluation of conditions against end-user answers
    - The transport used by storage or record services

Every tree operation is pure: it takes a Questionnaire (or Section)
and returns a new one. Statistics, validation and the export codec are
read-only consumers of a tree snapshot.
"""

__version__ = "0.1.0"
