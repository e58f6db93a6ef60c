"""Scene control backends."""

from rotatv.presenter.base import LoggingPresenter, Presenter, PresenterCall
from rotatv.presenter.obs import ObsPresenter

__all__ = [
    "LoggingPresenter",
    "ObsPresenter",
    "Presenter",
    "PresenterCall",
]
