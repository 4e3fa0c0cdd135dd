"""eaimport — enterprise-architecture model import pipeline.

Reads BPMN 2.0, ArchiMate Model Exchange (MEFF) and Sparx EA XMI/UML files,
converts them into a format-agnostic intermediate representation, repairs
that representation, and applies it to a model store through a sink port.
"""

__version__ = "0.1.0"
