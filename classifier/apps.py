from django.apps import AppConfig


class ClassifierConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'classifier'

    def ready(self):
        """Build the workspace objects the views share.

        The runtime, session controller, progress tracker, active model and
        store live on this config for the lifetime of the process; views
        reach them through ``classifier.views.helpers.workbench()``.
        """
        from training.progress import ProgressTracker
        from training.runtime import KerasRuntime
        from training.session import TrainingSessionController

        from .model_loader import ActiveModel
        from .store import PersistentStore

        self.store = PersistentStore()
        self.runtime = KerasRuntime()
        self.trainer = TrainingSessionController(self.runtime)
        self.tracker = ProgressTracker()
        self.active_model = ActiveModel(self.runtime, self.store)
