#
from functools import _lru_cache_wrapper
from typing import Callable, Union


class ClassPropertyDescriptor:
    """
    ClassPropertyDescriptor
    """

    def __init__(self, fget: classmethod) -> None:
        self.fget = fget

    def __get__(self, obj, klass=None):
        if klass is None:
            klass = type(obj)
        return self.fget.__get__(obj, klass)()


def classproperty(func: Union[Callable, _lru_cache_wrapper]) -> ClassPropertyDescriptor:
    """
    classproperty, the value is computed from the class (also when accessed on an instance)
    """
    if not isinstance(func, (classmethod, staticmethod)):
        func = classmethod(func)

    return ClassPropertyDescriptor(func)
