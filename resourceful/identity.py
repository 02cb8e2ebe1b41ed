# Resource naming conventions
#
# A resource kind is identified by its singular and plural name, the route
# parameter used to address one member ("<singular>_id") and the foreign key
# its children use to point at it (also "<singular>_id").
#
# Names are inferred from the model class name (or from the name used in a
# route declaration) with the inflect engine, e.g.
#   BlogPost -> blog_post, blog_posts, blog_post_id, "Blog post"
#
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
import inflect
from .errors import ConfigurationError

_inflector = inflect.engine()
_camel_boundary = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class Cardinality(Enum):
    """
    SINGULAR: exactly one resource per parent (no index, no member key in the url)
    PLURAL: a collection of resources addressed by their route key
    """

    SINGULAR = "singular"
    PLURAL = "plural"


def underscore(name: str) -> str:
    """
    :param name: CamelCase class name
    :return: snake_case name, e.g. "BlogPost" => "blog_post"
    """
    return _camel_boundary.sub("_", name).lower()


def humanize(name: str) -> str:
    """
    :return: "blog_post" => "Blog post"
    """
    return name.replace("_", " ").strip().capitalize()


#
# inflect reads some singular nouns as plurals ("address" => "addres"),
# the words below are never singularized
#
UNCOUNTABLE = {
    "data",
    "equipment",
    "fish",
    "information",
    "jeans",
    "metadata",
    "money",
    "news",
    "police",
    "rice",
    "series",
    "sheep",
    "species",
}
SINGULAR_ENDINGS = ("ss", "sis", "us")

_irregular_plurals = {}  # singular => plural
_irregular_singulars = {}  # plural => singular


def inflection(singular: str, plural: str) -> None:
    """
    Register an irregular noun, e.g. inflection("menu", "menus")
    """
    _irregular_plurals[singular] = plural
    _irregular_singulars[plural] = singular
    describe.cache_clear()
    describe_name.cache_clear()


def uncountable(*words: str) -> None:
    """
    Register nouns that have the same singular and plural form
    """
    UNCOUNTABLE.update(words)
    describe.cache_clear()
    describe_name.cache_clear()


def _last_word(name):
    head, _, last = name.rpartition("_")
    return (head + "_" if head else ""), last


def _singular_word(word: str) -> str:
    """
    :return: the singular form of the word, the word itself if it's singular already
    """
    lowered = word.lower()
    if lowered in UNCOUNTABLE or lowered in _irregular_plurals:
        return word
    if lowered in _irregular_singulars:
        return _irregular_singulars[lowered]
    if lowered.endswith(SINGULAR_ENDINGS):
        return word
    singular = _inflector.singular_noun(word)
    # only accept a singular that pluralizes back into the word
    if not singular or singular == word or _inflector.plural_noun(singular) != word:
        return word
    return singular


def singularize(name: str) -> str:
    head, last = _last_word(name)
    return head + _singular_word(last)


def pluralize(name: str) -> str:
    if not is_singular(name):
        return name
    head, last = _last_word(name)
    lowered = last.lower()
    if lowered in UNCOUNTABLE:
        return name
    if lowered in _irregular_plurals:
        return head + _irregular_plurals[lowered]
    return head + _inflector.plural_noun(last)


def is_singular(name: str) -> bool:
    """
    A name that can't be singularized any further is in singular form,
    uncountable names ("metadata", "news") are singular
    """
    _, last = _last_word(name)
    return _singular_word(last) == last


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Immutable naming information of a resource kind
    """

    singular_name: str
    plural_name: str
    route_key: str
    foreign_key: str
    display_name: str
    cardinality: Cardinality = Cardinality.PLURAL

    @property
    def name(self) -> str:
        """
        :return: the name in the form matching the cardinality
        """
        if self.cardinality is Cardinality.SINGULAR:
            return self.singular_name
        return self.plural_name

    @classmethod
    def from_singular(cls, singular_name: str, cardinality: Cardinality = Cardinality.PLURAL) -> "ResourceDescriptor":
        key = f"{singular_name}_id"
        return cls(
            singular_name=singular_name,
            plural_name=pluralize(singular_name),
            route_key=key,
            foreign_key=key,
            display_name=humanize(singular_name),
            cardinality=cardinality,
        )


@lru_cache(maxsize=256)
def describe(model) -> ResourceDescriptor:
    """
    :param model: model class (the entity kind)
    :return: ResourceDescriptor of the model, named after `__resource_name__` or the class name
    """
    if model is None:
        raise ConfigurationError("A resource model must be provided")
    name = getattr(model, "__resource_name__", None) or underscore(model.__name__)
    return ResourceDescriptor.from_singular(singularize(name))


@lru_cache(maxsize=256)
def describe_name(name: str) -> ResourceDescriptor:
    """
    :param name: resource name as used in a route declaration, e.g. "posts" or "profile"
    :return: ResourceDescriptor, the cardinality is inferred from the grammatical form of the name
    """
    if not name:
        raise ConfigurationError("A resource name must be provided")
    name = str(name)
    if is_singular(name):
        return ResourceDescriptor.from_singular(name, Cardinality.SINGULAR)
    return ResourceDescriptor.from_singular(singularize(name), Cardinality.PLURAL)
