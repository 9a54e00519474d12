from .manager import FormManager, Subscription, create_form, open_form
from .manipulator import FormManipulator
from .pipeline import ValidationPipeline, collect_errors, is_error_free
from .state import FieldError, FormDefinition, FormState, SchemaViolation
