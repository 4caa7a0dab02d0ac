"""Navigator Secrets Meta information.
   Navigator Secrets keeps one encrypted third-party API key per user,
   readable only by that user's authenticated identity.
"""
__title__ = 'navigator_secrets'
__description__ = (
   'Navigator Secrets stores per-user API keys encrypted '
   'with AES-256-GCM behind bearer authentication.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-secrets'
