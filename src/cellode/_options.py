def _get_default_options():
    """
    Returns a dictionary with the available translation options and the default values

    Returns:
        default_options (Dict)

    """
    return {
        'check_interfaces': True,
        'sort_equations': True,
        'name_separator': '.',
    }


def _merge_default_options(options):
    if options is None:
        return _get_default_options()
    elif isinstance(options, dict):
        default_options = _get_default_options()
        for k in options.keys():
            if k not in default_options:
                raise ValueError('unknown option {}'.format(k))
        default_options.update(options)
        return default_options
    else:
        raise TypeError('options must be of type dict')
