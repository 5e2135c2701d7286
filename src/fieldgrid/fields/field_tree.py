# %% -*- coding: utf-8 -*-
"""
Builds a hierarchy of field records from a nested field description, e.g.

    fields maps
    cfield coarse.bin
        field fine_entrance.bin
        cfield
            field tube_a.bin
            field tube_b.bin
        end
    end coarse.bin

'fields <dir>' sets the directory that later names are looked up in,
'field <name>' loads a binary container as a leaf, and 'cfield [name]'
opens a composite whose children follow up to the matching 'end [name]'. When
the cfield is named, that file supplies the composite's own samples. Words may
be separated by whitespace or commas, and lines starting with '#' are ignored.
"""

import logging
import os
import re

from .errors import FieldIOError, StructuralError
from .field_record import FieldRecord, CompositeField
from .binary_codec import read_field_file

logger = logging.getLogger(__name__)

DELIMITERS = re.compile(r'[\s,]+')

# %% Parser

class FieldTreeParser:
    """
    Recursive parser for nested field descriptions. Files are loaded with
    loader(path), which defaults to reading a binary container.
    """

    def __init__(self, base_dir: str = '.', loader=read_field_file, description_name: str = ''):
        self.base_dir = base_dir
        self.loader = loader
        self.description_name = description_name

    def _statements(self, lines):
        for lineno, line in enumerate(lines, start=1):
            tokens = [t for t in DELIMITERS.split(line) if t]
            if not tokens or tokens[0].startswith('#'):
                continue
            yield lineno, tokens

    def _error(self, message: str, lineno: int) -> StructuralError:
        return StructuralError(f"Line {lineno}: {message}", filename=self.description_name)

    def _resolve(self, name: str) -> str:
        return os.path.join(self.base_dir, name)

    def _load(self, name: str) -> FieldRecord:
        path = self._resolve(name)
        logger.debug(f"Loading field '{path}'")
        record = self.loader(path)
        record.source_name = name
        return record

    def _set_base(self, tokens, lineno):
        if len(tokens) < 2:
            raise self._error("'fields' needs a directory", lineno)
        self.base_dir = self._resolve(tokens[1])

    def parse(self, lines) -> FieldRecord:
        """
        Parses the description in lines (any iterable of strings) and returns
        the root record. Any failure aborts the whole build.
        """
        statements = self._statements(lines)
        root = None

        for lineno, tokens in statements:
            verb = tokens[0]
            if verb == 'fields':
                self._set_base(tokens, lineno)
            elif verb in ('cfield', 'field'):
                if root is not None:
                    raise self._error(f"A description has one root, found a second '{verb}'", lineno)
                if verb == 'cfield':
                    root = self._parse_cfield(tokens, lineno, statements)
                else:
                    root = self._parse_field(tokens, lineno)
            else:
                raise self._error(f"Unknown command '{verb}'", lineno)

        if root is None:
            raise StructuralError("Description contains no fields", filename=self.description_name)
        return root

    def _parse_field(self, tokens, lineno) -> FieldRecord:
        if len(tokens) < 2:
            raise self._error("'field' needs a file name", lineno)
        return self._load(tokens[1])

    def _parse_cfield(self, tokens, lineno, statements) -> FieldRecord:
        name = tokens[1] if len(tokens) > 1 else ''
        if name:
            record = self._load(name)
        else:
            record = CompositeField(source_name=f"cfield at line {lineno}")

        for sub_lineno, sub_tokens in statements:
            verb = sub_tokens[0]
            if verb == 'end':
                end_name = sub_tokens[1] if len(sub_tokens) > 1 else ''
                if end_name != name:
                    raise self._error(f"'end {end_name}' does not close 'cfield {name}' from line {lineno}", sub_lineno)
                return record
            elif verb == 'field':
                record.add_child(self._parse_field(sub_tokens, sub_lineno))
            elif verb == 'cfield':
                record.add_child(self._parse_cfield(sub_tokens, sub_lineno, statements))
            elif verb == 'fields':
                self._set_base(sub_tokens, sub_lineno)
            else:
                raise self._error(f"Unknown command '{verb}' in cfield", sub_lineno)

        raise StructuralError(f"End of description inside 'cfield {name}' from line {lineno}", filename=self.description_name)


def read_field_set(path, base_dir: str | None = None, loader=read_field_file) -> FieldRecord:
    """
    Reads the nested field description at path. Relative names are looked up
    next to the description unless base_dir is given.
    """
    path = os.fspath(path)
    if base_dir is None:
        base_dir = os.path.dirname(path)

    parser = FieldTreeParser(base_dir, loader, description_name=path)
    try:
        with open(path, 'r') as f:
            root = parser.parse(f)
    except FileNotFoundError as err:
        raise FieldIOError("Field description not found", filename=path) from err
    except OSError as err:
        if isinstance(err, FieldIOError):
            raise
        raise FieldIOError(f"Could not read field description: {err}", filename=path) from err

    logger.info(f"Read field set '{path}' with {sum(1 for _ in root.walk())} records")
    return root
