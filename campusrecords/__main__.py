"""
``python -m campusrecords`` runs the same command line as the ``campusrecords`` script.
"""

from campusrecords.cli import main

main()
