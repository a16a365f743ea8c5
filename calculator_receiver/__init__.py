"""四则运算计算器：中缀转后缀并求值，附带 OneBot 聊天前端"""
from calculator_receiver.infix import (
    calculate, to_postfix, evaluate_postfix, evaluate, precedence, is_operator, Operator,
    ExpressionError, EmptyExpressionError, IllegalCharacterError,
    UnbalancedOperatorsError, UnexpectedOperandError
)
from calculator_receiver.screen import CalculatorScreen, format_result

__all__ = [
    'calculate', 'to_postfix', 'evaluate_postfix', 'evaluate', 'precedence', 'is_operator', 'Operator',
    'ExpressionError', 'EmptyExpressionError', 'IllegalCharacterError',
    'UnbalancedOperatorsError', 'UnexpectedOperandError',
    'CalculatorScreen', 'format_result'
]
