"""envkeys Meta information.
   envkeys keeps API keys encrypted at rest and hands them to processes
   as environment variables.
"""
__title__ = 'envkeys'
__description__ = (
   'Local encrypted credential store that exposes API keys '
   'as environment variables.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/envkeys'
