"""
Shift matching, search sessions and the Flex automation collaborator.
"""
