"""HTTP handlers of the patients API.

Views are wired to their collaborators by :class:`clinic.router.Router`;
import them from their modules.
"""
