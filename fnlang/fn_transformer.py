"""
Transforms the raw koine parse tree into fn expressions (see fn_datatypes).
"""

from fnlang.fn_datatypes import (
    Bool, Chr, Comment, Num, Pair, ParseFailure, Quot, Word
)

# Number of characters of unparsed input shown in a parse error.
PREVIEW_LENGTH = 30


class FnTransformer:
    def transform(self, node: object) -> object:
        # Lists: transform each item
        if isinstance(node, list):
            return [self.transform(n) for n in node]

        if not isinstance(node, dict):
            return node

        tag = node.get('tag')
        children = node.get('children', [])

        match tag:
            case 'program':
                return self.transform(children)
            case 'quotation':
                return Quot(self.transform(children))
            case 'pair':
                if len(children) != 2:
                    raise ParseFailure(f"A pair holds exactly two expressions, got {len(children)}")
                first, second = self.transform(children)
                return Pair(first, second)

            # Atomics
            case 'number':
                return Num(int(node['text']))
            case 'boolean':
                return Bool(node['value'])
            case 'character':
                return Chr(node['text'][1])
            case 'string':
                # Strip the delimiters; strings are sugar for quotations of characters
                return Quot.from_text(node['text'][1:-1])
            case 'word':
                return Word(node['text'])
            case 'comment':
                return Comment(node['text'][2:].rstrip('\r\n'))

            case 'unparsed':
                junk = node['text']
                raise ParseFailure(f"Parse error in '{junk[:PREVIEW_LENGTH]}...'")

            case _:
                raise NotImplementedError(f"No transformer for tag '{tag}'")
