"""
URL configuration for the ferrum project.

The routes are owned by :class:`clinic.router.Router`.  This module builds
the default router from settings so that WSGI deployments (``ferrum.wsgi``)
and the Django test client resolve the same routes the ``serve`` command
does.
"""
from clinic.router import Router

router = Router.from_settings()

urlpatterns = router.urlpatterns
handler404 = router.handler404
handler500 = router.handler500
