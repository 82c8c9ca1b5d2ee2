"""Searchable selection menus and the list -> select cascade"""
import collections
import logging
import re

from simple_term_menu import TerminalMenu

from aws_errors import Cancelled, NothingFound

logger = logging.getLogger('awssh.menu')

# lister is called with the cascade state so far and returns Resources
Level = collections.namedtuple('Level', ['name', 'prompt', 'lister'])

# simple-term-menu reads a leading "[x] " as a shortcut key and drops it
SHORTCUT_PREFIX = re.compile(r'^\[\S\]')


def matches(label: str, query: str) -> bool:
    """Case-insensitive substring match"""
    return query.lower() in label.lower()


def _menu_entry(label: str) -> str:
    """Menu text that simple-term-menu shows exactly as the label"""
    entry = label.replace('|', '\\|')
    if SHORTCUT_PREFIX.match(entry):
        entry = ' ' + entry
    return entry


class SubstringMenu(TerminalMenu):
    """TerminalMenu whose type-to-search is a plain substring, not a regex"""

    class Search(TerminalMenu.Search):

        @TerminalMenu.Search.search_text.setter
        def search_text(self, text):
            self._search_text = text
            self._search_regex = None
            if text:
                flags = 0 if self._case_sensitive else re.IGNORECASE
                self._search_regex = re.compile(re.escape(text), flags=flags)
            self._update_matches()
            if self._change_callback:
                self._change_callback()


class Selector():
    """Single choice menu with incremental search"""

    def __init__(self, menu_class=SubstringMenu):
        self.menu_class = menu_class

    def select(self, labels: list, prompt: str) -> int:
        """Show labels and return the index of the confirmed one

        Typing filters the menu by case-insensitive substring, arrows move and
        enter confirms. Escape or Ctrl-C raise Cancelled.
        """
        kwargs = {
            'title': prompt,
            'search_key': None,
            'search_case_sensitive': False,
            'quit_keys': ('escape',),
            'raise_error_on_interrupt': False,
            'show_search_hint': True,
            'clear_menu_on_exit': True
        }
        menu = self.menu_class([_menu_entry(label) for label in labels], **kwargs)
        picked = menu.show()
        if picked is None:
            raise Cancelled(prompt)
        logger.debug('Selected %s', labels[picked])
        return picked


def run_cascade(levels, selector: Selector, queries: dict = None) -> tuple:
    """Narrow down one level at a time, each choice feeding the next lister

    Returns a tuple of (level name, Resource) pairs. queries maps level names
    to a substring that pre-filters that level. A single candidate is picked
    without prompting.
    """
    queries = queries or {}
    state = ()
    for level in levels:
        resources = level.lister(state)
        scope = 'in {}'.format(state[-1][1].label) if state else ''
        query = queries.get(level.name)
        if query:
            resources = [r for r in resources if matches(r.label, query)]
            scope = '{} matching "{}"'.format(scope, query).strip()
        if not resources:
            raise NothingFound(level.name, scope)
        if len(resources) == 1:
            index = 0
            print('Only one {} found: {}'.format(level.name, resources[0].label))
        else:
            index = selector.select([r.label for r in resources], level.prompt)
        state = state + ((level.name, resources[index]),)
    return state


def chosen(state: tuple, name: str):
    """The Resource picked for a level"""
    for level_name, resource in state:
        if level_name == name:
            return resource
    raise KeyError(name)
