"""create-server scaffolder -- framework generators and their building blocks.

Each supported framework has one generator class; ``GENERATORS`` maps the
``Framework`` enum to it so the orchestrator never branches on framework
names itself.

Quick usage::

    from create_server.config import build_configuration
    from create_server.scaffolder import GENERATORS

    config = build_configuration(
        server_name="demo-api",
        target_directory="/tmp/demo-api",
        framework="express",
    )
    generator = GENERATORS[config.framework](config)
    project_path = await generator.generate()
"""

from create_server.config import Framework
from create_server.scaffolder.base import BaseGenerator
from create_server.scaffolder.django import DjangoGenerator
from create_server.scaffolder.express import ExpressGenerator
from create_server.scaffolder.nestjs import NestGenerator
from create_server.scaffolder.templates import TemplateKind, TemplateRenderer
from create_server.scaffolder.wiring import WiringVariant, select_wiring

GENERATORS: dict[Framework, type[BaseGenerator]] = {
    Framework.EXPRESS: ExpressGenerator,
    Framework.NESTJS: NestGenerator,
    Framework.DJANGO: DjangoGenerator,
}

__all__ = [
    "BaseGenerator",
    "DjangoGenerator",
    "ExpressGenerator",
    "GENERATORS",
    "NestGenerator",
    "TemplateKind",
    "TemplateRenderer",
    "WiringVariant",
    "select_wiring",
]
