"""
Registry for pipeline stages.

This module provides a registry for stage classes to register themselves
and a decorator for registering them.
"""

from typing import Any, Dict, List, Optional, Set, Type

from npm_installer.base_stage import BaseStage


class StageRegistry:
    """
    Registry for pipeline stages.

    Stages register under a unique name; their ``dependencies`` metadata
    determines the execution order.
    """

    _registry: Dict[str, Type["BaseStage"]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Decorator for registering stage classes.

        Args:
            name: The name of the stage.
            metadata: Optional metadata for the stage, such as dependencies,
                      title, description and estimated duration.

        Returns:
            A decorator function that registers the stage class.
        """

        def decorator(
            stage_class: Type["BaseStage"],
        ) -> Type["BaseStage"]:
            if name in cls._registry:
                raise ValueError(
                    f"Stage with name '{name}' already registered"
                )

            if metadata:
                stage_class.metadata = metadata
            stage_class.name = name

            cls._registry[name] = stage_class
            return stage_class

        return decorator

    @classmethod
    def get_stage(cls, name: str) -> Type["BaseStage"]:
        """
        Get a stage class by name.

        Raises:
            KeyError: If no stage with the given name is registered.
        """
        if name not in cls._registry:
            raise KeyError(f"No stage registered with name '{name}'")

        return cls._registry[name]

    @classmethod
    def get_all_stages(cls) -> Dict[str, Type["BaseStage"]]:
        """Return a copy of the name-to-class mapping."""
        return cls._registry.copy()

    @classmethod
    def get_stage_dependencies(cls, name: str) -> Set[str]:
        """
        Get the dependencies of a stage.

        Raises:
            KeyError: If no stage with the given name is registered.
        """
        stage_class = cls.get_stage(name)
        metadata = getattr(stage_class, "metadata", {})
        return set(metadata.get("dependencies", []))

    @classmethod
    def resolve_dependencies(cls, stages: List[str]) -> List[str]:
        """
        Resolve dependencies for a list of stages.

        Args:
            stages: A list of stage names.

        Returns:
            A list of stage names in the order they should be run, with
            every dependency placed before its dependents.

        Raises:
            KeyError: If any of the stages or their dependencies are not registered.
            ValueError: If there is a circular dependency.
        """
        result = []
        visited = set()
        temp_visited = set()

        def visit(stage: str):
            if stage in temp_visited:
                raise ValueError(
                    f"Circular dependency detected involving '{stage}'"
                )

            if stage in visited:
                return

            temp_visited.add(stage)

            for dependency in sorted(cls.get_stage_dependencies(stage)):
                visit(dependency)

            temp_visited.remove(stage)
            visited.add(stage)
            result.append(stage)

        for stage in stages:
            if stage not in visited:
                visit(stage)

        return result
