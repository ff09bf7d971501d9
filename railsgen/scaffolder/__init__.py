"""railsgen scaffolder -- the steps that generate the projects.

``ApiSteps`` creates the Rails GraphQL API; ``ElmSteps`` and
``TypeScriptSteps`` create the optional frontend, bracketing their
code-generation steps with an ``ApiServer`` launch and stop.

Quick usage::

    from railsgen.scaffolder import ApiSteps, TemplateRenderer

    steps = ApiSteps(options, gate, pipeline, TemplateRenderer()).steps()
    result = await pipeline.run(steps)
"""

from railsgen.scaffolder.api import ApiSteps
from railsgen.scaffolder.elm import ElmSteps
from railsgen.scaffolder.server import ApiServer
from railsgen.scaffolder.templates import TemplateRenderer
from railsgen.scaffolder.typescript import TypeScriptSteps

__all__ = [
    "ApiServer",
    "ApiSteps",
    "ElmSteps",
    "TemplateRenderer",
    "TypeScriptSteps",
]
