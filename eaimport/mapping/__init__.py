"""Type token mapping across the ArchiMate, BPMN and UML taxonomies."""
