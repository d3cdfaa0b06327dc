"""State/store layer.

The store is the single owner of the current immutable state. Writers
only ever see a draft, which is turned back into a new immutable value
(sharing every untouched subtree with the previous one) when the
outermost update finishes.
"""
