from resolvespine.api.middleware.errors import problem_response, spine_error_handler, unhandled_exception_handler
from resolvespine.api.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware", "problem_response", "spine_error_handler", "unhandled_exception_handler"]
