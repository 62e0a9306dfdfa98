from setuptools import setup, find_packages

setup(
    name='RocketChatSync',
    version='0.0.1',
    packages=find_packages(include=['rocketchat_sync', 'rocketchat_sync.*']),
    install_requires=[
        'requests',
        'pymysql',
        'cryptography',  # pymysql needs it for caching_sha2_password logins
        'keyring',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['rocketchat-sync=rocketchat_sync.cli:main'],
    },
    author='Michael Mars Landis',
    author_email='mlandis+moodlesync@warren-wilson.edu',
    description='A module for syncing Moodle course groups to Rocket.Chat private channels',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    url='https://github.com/mars-wilson/moodle_sync',  # URL of your project
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.11',
)
