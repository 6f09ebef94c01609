"""
MockAPI Faker Registry

Closed registry of synthetic-data generators addressable by dotted path,
e.g. {{faker.person.firstName}} or {{faker.lorem.words(3)}}.

Paths follow the faker.js naming used in existing mock configs and map
onto Python Faker providers. Anything not registered is reported as
unsupported instead of being looked up dynamically.
"""

import re
from datetime import timezone
from typing import List, Dict, Any, Optional, Callable, Tuple

from faker import Faker

from ..common import isoformat_utc
from .results import ExpressionResult


Generator = Callable[..., Any]


def _count(value: Any, default: int) -> int:
    return int(value) if value is not None else default


def _range(fake: Faker, min_value: Any = 0, max_value: Any = 100) -> int:
    return fake.random_int(min=int(min_value), max=int(max_value))


def _float(fake: Faker, min_value: Any = 0, max_value: Any = 100, precision: Any = 2) -> float:
    return round(fake.pyfloat(min_value=min_value, max_value=max_value), int(precision))


def _price(fake: Faker, min_value: Any = 1, max_value: Any = 1000) -> str:
    return f"{fake.pyfloat(min_value=min_value, max_value=max_value):.2f}"


# faker.js path -> generator(fake, *args)
_PERSON = {
    'firstName': lambda f: f.first_name(),
    'lastName': lambda f: f.last_name(),
    'fullName': lambda f: f.name(),
    'prefix': lambda f: f.prefix(),
    'suffix': lambda f: f.suffix(),
    'jobTitle': lambda f: f.job(),
}

_LOCATION = {
    'city': lambda f: f.city(),
    'country': lambda f: f.country(),
    'countryCode': lambda f: f.country_code(),
    'state': lambda f: f.state(),
    'streetAddress': lambda f: f.street_address(),
    'zipCode': lambda f: f.postcode(),
    'latitude': lambda f: float(f.latitude()),
    'longitude': lambda f: float(f.longitude()),
}

_REGISTRY: Dict[str, Generator] = {
    # Lorem
    'lorem.word': lambda f: f.word(),
    'lorem.words': lambda f, n=3: ' '.join(f.words(nb=_count(n, 3))),
    'lorem.sentence': lambda f, n=6: f.sentence(nb_words=_count(n, 6)),
    'lorem.sentences': lambda f, n=3: ' '.join(f.sentences(nb=_count(n, 3))),
    'lorem.paragraph': lambda f, n=3: f.paragraph(nb_sentences=_count(n, 3)),
    'lorem.paragraphs': lambda f, n=3: '\n\n'.join(f.paragraphs(nb=_count(n, 3))),
    'lorem.slug': lambda f: f.slug(),
    'lorem.text': lambda f: f.text(),

    # Internet
    'internet.email': lambda f: f.email(),
    'internet.userName': lambda f: f.user_name(),
    'internet.username': lambda f: f.user_name(),
    'internet.url': lambda f: f.url(),
    'internet.domainName': lambda f: f.domain_name(),
    'internet.ip': lambda f: f.ipv4(),
    'internet.ipv4': lambda f: f.ipv4(),
    'internet.ipv6': lambda f: f.ipv6(),
    'internet.mac': lambda f: f.mac_address(),
    'internet.password': lambda f, n=12: f.password(length=_count(n, 12)),
    'internet.userAgent': lambda f: f.user_agent(),

    # Phone / company / finance
    'phone.number': lambda f: f.phone_number(),
    'company.name': lambda f: f.company(),
    'company.catchPhrase': lambda f: f.catch_phrase(),
    'company.buzzPhrase': lambda f: f.bs(),
    'commerce.price': _price,
    'finance.amount': _price,
    'finance.creditCardNumber': lambda f: f.credit_card_number(),
    'finance.iban': lambda f: f.iban(),
    'finance.currencyCode': lambda f: f.currency_code(),

    # Numbers / datatypes / strings
    'number.int': _range,
    'number.float': _float,
    'datatype.number': _range,
    'datatype.boolean': lambda f: f.boolean(),
    'datatype.uuid': lambda f: f.uuid4(),
    'string.uuid': lambda f: f.uuid4(),
    'string.alpha': lambda f, n=10: f.lexify('?' * _count(n, 10)),
    'string.numeric': lambda f, n=10: f.numerify('#' * _count(n, 10)),

    # Dates
    'date.past': lambda f: isoformat_utc(f.past_datetime(start_date='-365d', tzinfo=timezone.utc)),
    'date.future': lambda f: isoformat_utc(f.future_datetime(end_date='+365d', tzinfo=timezone.utc)),
    'date.recent': lambda f: isoformat_utc(f.past_datetime(start_date='-1d', tzinfo=timezone.utc)),
    'date.soon': lambda f: isoformat_utc(f.future_datetime(end_date='+1d', tzinfo=timezone.utc)),
    'date.birthdate': lambda f: f.date_of_birth().isoformat(),
    'date.month': lambda f: f.month_name(),
    'date.weekday': lambda f: f.day_of_week(),

    # Misc
    'image.url': lambda f: f.image_url(),
    'image.avatar': lambda f: f.image_url(width=128, height=128),
    'color.human': lambda f: f.color_name(),
    'color.rgb': lambda f: f.hex_color(),
}

for _name, _gen in _PERSON.items():
    _REGISTRY[f'person.{_name}'] = _gen
    _REGISTRY[f'name.{_name}'] = _gen  # pre-v8 faker.js namespace

for _name, _gen in _LOCATION.items():
    _REGISTRY[f'location.{_name}'] = _gen
    _REGISTRY[f'address.{_name}'] = _gen  # pre-v8 faker.js namespace


_CALL_PATTERN = re.compile(r'^([A-Za-z_][\w.]*?)(?:\((.*)\))?$', re.S)
_ARG_PATTERN = re.compile(r'"[^"]*"|\'[^\']*\'|[^,]+')
_NUMBER_PATTERN = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


def parse_arguments(args_string: str) -> List[Any]:
    """
    Parse comma-separated literal call arguments.

    Quoted strings lose their quotes, numeric literals become int/float,
    anything else is passed through as text.

    Example:
        parse_arguments("1, 'two', 3.5")  # [1, 'two', 3.5]
    """
    if not args_string or not args_string.strip():
        return []

    parsed = []
    for raw in _ARG_PATTERN.findall(args_string):
        arg = raw.strip()
        if not arg:
            continue
        if len(arg) >= 2 and arg[0] == arg[-1] and arg[0] in ('"', "'"):
            parsed.append(arg[1:-1])
        elif _NUMBER_PATTERN.match(arg):
            parsed.append(float(arg) if any(c in arg for c in '.eE') else int(arg))
        else:
            parsed.append(arg)
    return parsed


def split_call(path: str) -> Tuple[str, Optional[List[Any]]]:
    """
    Split "lorem.words(3)" into ("lorem.words", [3]).

    Args are None when the path has no call parentheses.
    """
    match = _CALL_PATTERN.match(path.strip())
    if not match:
        raise ValueError(f"Invalid faker path: {path}")
    name, args_string = match.group(1), match.group(2)
    return name, (parse_arguments(args_string) if args_string is not None else None)


class FakerRegistry:
    """
    Registry of synthetic-data generators backed by a Faker instance.

    Example:
        registry = FakerRegistry(locale='en_US', seed=42)
        result = registry.evaluate('person.firstName')
        if not result.degraded:
            print(result.value)
    """

    def __init__(
        self,
        fake: Optional[Faker] = None,
        locale: str = 'en_US',
        seed: Optional[int] = None,
        generators: Optional[Dict[str, Generator]] = None
    ):
        """
        Initialize registry.

        Args:
            fake: Existing Faker instance (created from locale if None)
            locale: Faker locale
            seed: Seed for reproducible data
            generators: Extra or overriding path -> generator entries
        """
        self.fake = fake or Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)
        self.generators = dict(_REGISTRY)
        if generators:
            self.generators.update(generators)

    def paths(self) -> List[str]:
        """All registered dotted paths, sorted."""
        return sorted(self.generators)

    def lookup(self, path: str) -> Optional[Generator]:
        return self.generators.get(path)

    def evaluate(self, expression: str) -> ExpressionResult:
        """
        Evaluate a faker path (without the "faker." prefix).

        Returns:
            ExpressionResult with the generated value, or a degraded result
            whose value is None when the path is unsupported or the
            generator raised
        """
        try:
            name, args = split_call(expression)
        except ValueError as e:
            return ExpressionResult.failed(None, str(e))

        generator = self.lookup(name)
        if generator is None:
            namespace = name.split('.', 1)[0] + '.'
            known = [path for path in self.paths() if path.startswith(namespace)]
            hint = f" (known {namespace}* paths: {', '.join(known)})" if known else ""
            return ExpressionResult.failed(None, f"Unsupported faker path: {name}{hint}")

        try:
            return ExpressionResult.ok(generator(self.fake, *(args or [])))
        except Exception as e:
            return ExpressionResult.failed(None, f"Faker generator {name} failed: {e}")
