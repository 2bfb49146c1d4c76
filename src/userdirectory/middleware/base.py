"""
=============================================================================
MIDDLEWARE CONTRACT AND PIPELINE
=============================================================================

A middleware is a callable ``(request, next) -> response``. ``next`` runs the
rest of the chain. Each stage can:

    - observe:        look at the request, call next, look at the response
    - short-circuit:  return its own response without calling next
    - recover:        call next inside try/except and answer for a failure

=============================================================================
COMPOSITION ORDER
=============================================================================

The pipeline is fixed at startup as an ordered list. ``wrap`` composes it
innermost-first, so the first middleware added is the outermost layer:

    pipeline.use(ErrorHandlingMiddleware(),
                 AuthenticationMiddleware(token),
                 LoggingMiddleware())
    handler = pipeline.wrap(router.handle)

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ErrorHandlingMiddleware                                            │
    │  ┌───────────────────────────────────────────────────────────────┐  │
    │  │  AuthenticationMiddleware                                     │  │
    │  │  ┌─────────────────────────────────────────────────────────┐  │  │
    │  │  │  LoggingMiddleware                                      │  │  │
    │  │  │  ┌───────────────────────────────────────────────────┐  │  │  │
    │  │  │  │            router.handle → UserHandlers           │  │  │  │
    │  │  │  └───────────────────────────────────────────────────┘  │  │  │
    │  │  └─────────────────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────────────────┘

    Inward:   ErrorHandling → Authentication → Logging → handler
    Outward:  handler → Logging → Authentication → ErrorHandling

A 401 from Authentication never reaches Logging or the handler, but it still
travels back out through ErrorHandling as an ordinary response.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The rest of the chain as seen from one stage.
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for pipeline stages.

        class TimingHeader(Middleware):
            def __call__(self, request, next):
                if request.path == "/blocked":
                    return not_found()          # short-circuit
                response = next(request)        # continue the chain
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process ``request``.

        Args:
            request: The shared request context.
            next: The remainder of the chain. Call it unless short-circuiting.

        Returns:
            The response, either from ``next`` or produced here.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered list of middleware, composed around a final handler.

    Stages run in the order added on the way in and in reverse on the way
    out.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around ``handler``.

        Given [A, B, C]:

            current = handler
            current = C(current)
            current = B(current)
            current = A(current)      # A(B(C(handler)))

        Wrapping in reverse makes the first-added stage the outermost.
        """
        current = handler

        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)

        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """
    Adapts a plain ``(request, next) -> response`` function.

        pipeline.add(FunctionMiddleware(my_func, name="my_func"))
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """
    Decorator form of ``FunctionMiddleware``.

        @function_middleware
        def tag(request, next):
            response = next(request)
            response.headers["X-Tag"] = "1"
            return response
    """
    return FunctionMiddleware(func)
