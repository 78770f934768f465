# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, integrations and side effects.
"""

from .mongodb import MongoDBService
from .notifier import Notifier, AMQPNotifier, AMQPConfig, NotificationDispatcher, create_amqp_notifier
from .container import ServiceContainer, build_services, load_config

__all__ = [
    "MongoDBService",
    "Notifier",
    "AMQPNotifier",
    "AMQPConfig",
    "NotificationDispatcher",
    "create_amqp_notifier",
    "ServiceContainer",
    "build_services",
    "load_config"
]
