"""
Core types for tokenization.
"""

type Token = int
type Symbol = str
type SymbolPair = tuple[Symbol, Symbol]
type MergeRanks = dict[SymbolPair, int]
type Vocabulary = dict[Symbol, Token]
