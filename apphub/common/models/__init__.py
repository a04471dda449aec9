# flake8: noqa
# mypy: implicit-reexport

import apphub.common.models.app as App
import apphub.common.models.magic_token as MagicToken
import apphub.common.models.star as Star
