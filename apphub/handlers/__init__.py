"""AWS Lambda event handlers of the application.

Each top level package in `apphub.handlers` corresponds to a CloudFormation
stack. Each stack defines a service of the application.

Handlers may import names from peer modules or common modules, but may not
import from other handler packages. Eg.: `apphub.handlers.viewer.content` may
import from `apphub.common.content` or `apphub.handlers.viewer.grant_cookie`,
but it may not import from `apphub.handlers.apps`.

"""
